"""End-to-end runs against a scripted portal, plus storage, notification and triggers."""
import asyncio
import json
import os
import sys
import unittest
from datetime import date, datetime, timezone
from unittest import mock

import httpx

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(__file__))

os.environ.setdefault("DATABASE_URL", ":memory:")

from helpers import FakeSleep, RecordingNotifier, ScriptedPortal, html_response, json_response, text_response

from bonus import database
from bonus.config import MissingCredentials, Settings
from bonus.jobs import TITLE_FAILED, TITLE_OK, run_daily
from bonus.models.challenge import Stage
from bonus.models.report import Outcome, RunReport, StageOutcome
from bonus.protocol import stage1_login, stage2_site_sign, stage3_guild_sign, stage4_anime_quiz
from bonus.scheduler import seconds_until_next
from bonus.services.notify import TelegramNotifier, escape_markdown, format_message
from bonus.services.pacer import Pacer

RUN_DAY = date(2024, 3, 9)
TOPBAR_URL = "https://api.gamer.com.tw/ajax/common/topBar.php"


def _settings(**overrides) -> Settings:
    values = {"bahamut_uid": "tester", "bahamut_pwd": "hunter2", "bahamut_totp": "", "use_smart_delay": False}
    values.update(overrides)
    return Settings(**values)


def steady_state_routes(login=None):
    """Everything already done today: the common daily case."""
    return {
        ("POST", stage1_login.LOGIN_URL): login or json_response(
            {"success": True}, cookies=["BAHARUNE=r1; path=/; domain=.gamer.com.tw"]
        ),
        ("GET", stage2_site_sign.CSRF_URL): text_response("csrf-token"),
        ("POST", stage2_site_sign.SIGN_URL): json_response({"error": {"message": "already signed in"}}),
        ("GET", TOPBAR_URL): html_response("<ul><li>no guild</li></ul>"),
        ("GET", stage4_anime_quiz.HOME_URL): text_response("", status=302, content_type="text/html"),
        ("GET", stage4_anime_quiz.QUESTION_URL): json_response({"error": 1, "msg": "already answered"}),
    }


async def _with_db(coro_fn):
    try:
        return await coro_fn()
    finally:
        await database.close_db()


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------

class TestRunDaily(unittest.TestCase):
    def _run(self, portal, notifier, settings=None, **kwargs):
        sleep = FakeSleep()

        async def _go():
            report = await run_daily(
                settings or _settings(),
                http=portal.client(),
                notifier=notifier,
                pacer=Pacer(enabled=False),
                today=RUN_DAY,
                sleep=sleep,
                **kwargs,
            )
            stored = await database.load_status(RUN_DAY)
            return report, stored

        return asyncio.run(_with_db(_go))

    def test_steady_state_run(self):
        portal = ScriptedPortal(steady_state_routes())
        notifier = RecordingNotifier()
        report, stored = self._run(portal, notifier)

        self.assertTrue(report.success)
        self.assertIsNone(report.error)
        self.assertEqual(len(report.outcomes), 3)
        self.assertEqual(
            [o.outcome for o in report.outcomes],
            [Outcome.ALREADY_DONE, Outcome.NOT_A_MEMBER, Outcome.ALREADY_DONE],
        )
        self.assertEqual(len(notifier.sent), 1)
        title, body = notifier.sent[0]
        self.assertEqual(title, TITLE_OK)
        self.assertEqual(body, "\n".join(report.messages))
        self.assertEqual(len(body.split("\n")), 3)
        self.assertIsNotNone(stored)
        self.assertEqual(stored.messages, report.messages)

    def test_session_threaded_through_stages(self):
        portal = ScriptedPortal(steady_state_routes())
        self._run(portal, RecordingNotifier())
        csrf = portal.calls_to("GET", stage2_site_sign.CSRF_URL)[0]
        self.assertEqual(csrf.headers["Cookie"], "BAHARUNE=r1")
        question = portal.calls_to("GET", stage4_anime_quiz.QUESTION_URL)[0]
        self.assertIn("BAHARUNE=r1", question.headers["Cookie"])

    def test_login_failure_aborts(self):
        portal = ScriptedPortal(steady_state_routes(
            login=json_response({"success": False, "message": "帳號、密碼錯誤"})
        ))
        notifier = RecordingNotifier()
        report, stored = self._run(portal, notifier)

        self.assertFalse(report.success)
        self.assertEqual(report.outcomes, ())
        self.assertIn("wrong account or password", report.error)
        self.assertEqual(notifier.sent[0][0], TITLE_FAILED)
        self.assertIn("❌ Error:", notifier.sent[0][1])
        self.assertEqual(portal.calls_to("GET", stage2_site_sign.CSRF_URL), [])
        self.assertFalse(stored.success)

    def test_stage_failures_do_not_fail_run(self):
        routes = steady_state_routes()
        routes[("POST", stage2_site_sign.SIGN_URL)] = json_response({"error": {"message": "server busy"}})
        routes[("GET", stage4_anime_quiz.QUESTION_URL)] = text_response("<html></html>", content_type="text/html")
        report, _ = self._run(ScriptedPortal(routes), RecordingNotifier())
        self.assertTrue(report.success)
        self.assertTrue(report.outcomes[0].is_failure)
        self.assertIn("server busy", report.outcomes[0].message)
        self.assertTrue(report.outcomes[2].is_failure)

    def test_unauthenticated_session_fails_stages(self):
        routes = steady_state_routes(login=json_response({"success": True}))
        portal = ScriptedPortal(routes)
        report, _ = self._run(portal, RecordingNotifier())
        self.assertTrue(all(o.is_failure for o in report.outcomes))
        self.assertIn("not authenticated", report.outcomes[0].detail)
        self.assertEqual(len(portal.requests), 1)

    def test_feature_toggles(self):
        settings = _settings(need_sign_guild=False, need_answer=False)
        portal = ScriptedPortal(steady_state_routes())
        report, _ = self._run(portal, RecordingNotifier(), settings=settings)
        self.assertEqual([o.stage for o in report.outcomes], [Stage.SITE_SIGN])

    def test_same_day_success_short_circuits(self):
        portal = ScriptedPortal(steady_state_routes())
        notifier = RecordingNotifier()

        async def _go():
            kwargs = dict(http=portal.client(), notifier=notifier, pacer=Pacer(enabled=False), today=RUN_DAY)
            first = await run_daily(_settings(), **kwargs)
            calls = len(portal.requests)
            second = await run_daily(_settings(), **kwargs)
            self.assertEqual(len(portal.requests), calls)
            forced = await run_daily(_settings(), force=True, **kwargs)
            self.assertGreater(len(portal.requests), calls)
            return first, second, forced

        first, second, forced = asyncio.run(_with_db(_go))
        self.assertEqual(first.messages, second.messages)
        self.assertEqual(len(notifier.sent), 2)
        self.assertTrue(forced.success)

    def test_failed_day_is_retried(self):
        notifier = RecordingNotifier()
        failing = ScriptedPortal(steady_state_routes(login=json_response({"success": False, "message": "查無此人"})))
        working = ScriptedPortal(steady_state_routes())

        async def _go():
            kwargs = dict(notifier=notifier, pacer=Pacer(enabled=False), today=RUN_DAY, sleep=FakeSleep())
            first = await run_daily(_settings(), http=failing.client(), **kwargs)
            second = await run_daily(_settings(), http=working.client(), **kwargs)
            return first, second

        first, second = asyncio.run(_with_db(_go))
        self.assertFalse(first.success)
        self.assertTrue(second.success)

    def test_missing_credentials(self):
        with self.assertRaises(MissingCredentials):
            asyncio.run(run_daily(_settings(bahamut_uid=""), notifier=RecordingNotifier()))


# ---------------------------------------------------------------------------
# Status storage
# ---------------------------------------------------------------------------

class TestStatusStore(unittest.TestCase):
    REPORT = RunReport(
        success=True,
        outcomes=(StageOutcome.success(Stage.SITE_SIGN, "Site sign-in succeeded, 5 consecutive days"),),
        timestamp=datetime(2024, 3, 9, 0, 5, tzinfo=timezone.utc),
    )

    def test_key_format(self):
        self.assertEqual(database.status_key(RUN_DAY), "status:2024-03-09")

    def test_roundtrip_and_expiry(self):
        async def _go():
            now = 1_710_000_000.0
            await database.save_status(RUN_DAY, self.REPORT, now=now)
            fresh = await database.load_status(RUN_DAY, now=now + 3600)
            expired = await database.load_status(RUN_DAY, now=now + 8 * 86400)
            history = await database.list_statuses(now=now + 60)
            return fresh, expired, history

        fresh, expired, history = asyncio.run(_with_db(_go))
        self.assertEqual(fresh, self.REPORT)
        self.assertIsNone(expired)
        self.assertEqual(history[0]["key"], "status:2024-03-09")

    def test_expired_rows_purged_on_write(self):
        async def _go():
            now = 1_710_000_000.0
            await database.save_status(date(2024, 3, 1), self.REPORT, now=now)
            await database.save_status(RUN_DAY, self.REPORT, now=now + 8 * 86400)
            db = await database.get_db()
            cursor = await db.execute("SELECT key FROM run_status")
            return [r["key"] for r in await cursor.fetchall()]

        keys = asyncio.run(_with_db(_go))
        self.assertEqual(keys, ["status:2024-03-09"])


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

class TestTelegramNotifier(unittest.TestCase):
    def test_escape(self):
        self.assertEqual(escape_markdown("3/9 done. (ok!)"), "3/9 done\\. \\(ok\\!\\)")
        self.assertTrue(format_message("Daily", "a-b").startswith("🎮 *Daily*"))

    def test_disabled(self):
        self.assertFalse(TelegramNotifier("", "123").enabled)
        self.assertFalse(asyncio.run(TelegramNotifier("", "").send("t", "b")))

    def test_send_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ok = asyncio.run(TelegramNotifier("bot-token", "42", http=http).send("Done", "✅ line 1\n⚠️ line 2"))
        self.assertTrue(ok)
        self.assertEqual(seen[0].url.path, "/botbot-token/sendMessage")
        payload = json.loads(seen[0].content)
        self.assertEqual(payload["chat_id"], "42")
        self.assertEqual(payload["parse_mode"], "MarkdownV2")
        self.assertTrue(payload["disable_web_page_preview"])
        self.assertIn("line 1\n", payload["text"])

    def test_failures_swallowed(self):
        bad_request = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda r: httpx.Response(400, json={"ok": False, "description": "chat not found"})
        ))
        self.assertFalse(asyncio.run(TelegramNotifier("t", "1", http=bad_request).send("t", "b")))

        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        down = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        self.assertFalse(asyncio.run(TelegramNotifier("t", "1", http=down).send("t", "b")))


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------

class TestScheduler(unittest.TestCase):
    def test_next_run_today(self):
        now = datetime(2024, 3, 9, 0, 0, tzinfo=timezone.utc)
        self.assertEqual(seconds_until_next(now, 0, 5), 300)

    def test_next_run_tomorrow(self):
        now = datetime(2024, 3, 9, 0, 5, tzinfo=timezone.utc)
        self.assertEqual(seconds_until_next(now, 0, 5), 86400)
        now = datetime(2024, 3, 9, 23, 0, tzinfo=timezone.utc)
        self.assertEqual(seconds_until_next(now, 0, 5), 3900)


class TestRoutes(unittest.TestCase):
    def test_health_and_missing_credentials(self):
        from fastapi.testclient import TestClient

        from bonus.config import settings
        from bonus.main import app

        with mock.patch.object(settings, "bahamut_uid", ""), TestClient(app) as client:
            health = client.get("/health")
            self.assertEqual(health.status_code, 200)
            self.assertEqual(health.json()["status"], "ok")
            self.assertEqual(client.post("/trigger").status_code, 400)
            self.assertEqual(client.get("/status/2024-03-09").status_code, 404)


if __name__ == "__main__":
    unittest.main(verbosity=2)
