import unittest
from datetime import datetime

from fastapi import FastAPI
from fastapi.testclient import TestClient

from overtime.routers import api
from overtime.services.controller import TrackerController
from overtime.services.storage import MemoryStorage

MINUTE_MS = 60 * 1000


class FakeClock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += int(minutes * MINUTE_MS)


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(int(datetime(2026, 2, 18, 8, 0).timestamp() * 1000))
        self.controller = TrackerController(MemoryStorage(), clock=self.clock)
        self.controller.load()

        app = FastAPI()
        app.include_router(api.router)
        app.state.controller = self.controller
        self.client = TestClient(app)

    def test_status_when_idle(self) -> None:
        response = self.client.get("/api/status")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "idle")
        self.assertIsNone(body["balance"])
        self.assertEqual(body["timer"]["is_running"], False)
        self.assertEqual(body["remaining_formatted"], "08:00")

    def test_timer_flow(self) -> None:
        started = self.client.post("/api/start", json={"start_time": "07:30"}).json()
        self.assertTrue(started["success"])
        self.assertFalse(self.client.post("/api/start").json()["success"])

        self.clock.advance(60)
        self.assertEqual(self.client.post("/api/pause").json()["status"], "paused")
        self.clock.advance(5)
        self.assertEqual(self.client.post("/api/continue").json()["status"], "running")

        status = self.client.get("/api/status").json()
        self.assertEqual(status["balance"]["gross_worked_minutes"], 95)
        self.assertEqual(status["balance"]["manual_break_minutes"], 5)
        self.assertEqual(status["worked_formatted"], "01:30")

        self.assertTrue(self.client.post("/api/stop").json()["success"])
        draft = self.client.get("/api/status").json()["draft"]
        self.assertEqual(draft["start_time"], "07:30")
        self.assertEqual(draft["end_time"], "09:05")

    def test_start_without_body_uses_now(self) -> None:
        self.assertTrue(self.client.post("/api/start").json()["success"])
        self.assertEqual(self.controller.timer.start_timestamp, self.clock.now)

    def test_entries_overwrite_requires_confirm(self) -> None:
        payload = {"date": "2026-02-18", "start_time": "08:00", "end_time": "17:00"}
        created = self.client.post("/api/entries", json=payload).json()
        self.assertTrue(created["success"])
        self.assertEqual(created["entry"]["diff_minutes"], 30)
        self.assertEqual(created["next_date"], "2026-02-19")

        payload["end_time"] = "16:00"
        self.assertFalse(self.client.post("/api/entries", json=payload).json()["success"])
        replaced = self.client.post("/api/entries", json={**payload, "confirm": True}).json()
        self.assertTrue(replaced["success"])

        listing = self.client.get("/api/entries").json()
        self.assertEqual(len(listing["entries"]), 1)
        self.assertEqual(listing["total_balance_minutes"], -30)
        self.assertEqual(listing["total_balance_formatted"], "-0:30")

    def test_preview_entry(self) -> None:
        payload = {"date": "2026-02-18", "start_time": "22:00", "end_time": "06:00"}
        preview = self.client.post("/api/entries/preview", json=payload).json()
        self.assertTrue(preview["overnight"])
        self.assertEqual(preview["worked_minutes"], 450)
        self.assertEqual(self.client.get("/api/entries").json()["entries"], [])

    def test_delete_unknown_entry_is_404(self) -> None:
        response = self.client.delete("/api/entries/999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Entry not found")

    def test_clear_entries_requires_confirm(self) -> None:
        self.client.post(
            "/api/entries",
            json={"date": "2026-02-18", "start_time": "08:00", "end_time": "17:00"},
        )
        self.assertFalse(self.client.delete("/api/entries").json()["success"])
        self.assertTrue(self.client.delete("/api/entries?confirm=true").json()["success"])
        self.assertEqual(self.client.get("/api/entries").json()["entries"], [])

    def test_settings(self) -> None:
        self.assertEqual(
            self.client.get("/api/settings").json(),
            {"target_minutes": 480, "break_minutes": 60},
        )
        response = self.client.put(
            "/api/settings", json={"target_minutes": 468, "break_minutes": 30}
        )
        self.assertTrue(response.json()["success"])
        self.assertEqual(self.controller.settings.target_minutes, 468)

        invalid = self.client.put(
            "/api/settings", json={"target_minutes": -1, "break_minutes": 30}
        )
        self.assertEqual(invalid.status_code, 422)


if __name__ == "__main__":
    unittest.main()
