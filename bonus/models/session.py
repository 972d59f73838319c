"""Credential and cookie Session dataclasses."""
from dataclasses import dataclass, field
from typing import Iterable


@dataclass(frozen=True)
class Credential:
    uid: str
    password: str = field(repr=False)
    totp_seed: str | None = field(default=None, repr=False)


@dataclass
class Session:
    """
    Cookies accumulated over one run.
    Later Set-Cookie values overwrite same-named entries; nothing is ever removed.
    """
    cookies: dict[str, str] = field(default_factory=dict)

    def absorb(self, set_cookie_headers: Iterable[str]) -> None:
        for header in set_cookie_headers:
            name_value = header.split(";", 1)[0]
            name, sep, value = name_value.partition("=")
            name, value = name.strip(), value.strip()
            if sep and name and value:
                self.cookies[name] = value

    def serialize(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def __bool__(self) -> bool:
        return bool(self.cookies)
