import unittest
from datetime import datetime, timedelta
from unittest import mock

from sqlalchemy.exc import OperationalError

from pixelock.errors import StorageError
from pixelock.models.ticket import Ticket
from pixelock.services import ticket_store

from tests.support import make_sessionmaker

NOW = datetime(2026, 3, 1, 9, 30, 0)


class TestTicketStore(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_sessionmaker()()
        ticket_store.insert(
            self.db,
            Ticket(
                token="tok-1",
                object_path="obj/a.jpg",
                pin_hash="x" * 64,
                expires_at=NOW + timedelta(hours=1),
                reveal_seconds=15,
                attempts=0,
                max_attempts=2,
                used=False,
            ),
        )

    def tearDown(self) -> None:
        self.db.close()

    def test_failed_attempts_stop_at_cap(self) -> None:
        self.assertTrue(ticket_store.record_failed_attempt(self.db, "tok-1", NOW))
        self.assertTrue(ticket_store.record_failed_attempt(self.db, "tok-1", NOW))
        self.assertFalse(ticket_store.record_failed_attempt(self.db, "tok-1", NOW))
        self.assertEqual(ticket_store.get_by_token(self.db, "tok-1").attempts, 2)

    def test_failed_attempt_refused_after_expiry(self) -> None:
        self.assertFalse(ticket_store.record_failed_attempt(self.db, "tok-1", NOW + timedelta(hours=2)))
        self.assertEqual(ticket_store.get_by_token(self.db, "tok-1").attempts, 0)

    def test_mark_used_only_flips_once(self) -> None:
        self.assertTrue(ticket_store.mark_used(self.db, "tok-1"))
        self.assertFalse(ticket_store.mark_used(self.db, "tok-1"))
        self.assertFalse(ticket_store.mark_used(self.db, "unknown"))
        self.assertTrue(ticket_store.is_used(self.db, "tok-1"))

    def test_mark_unlocked_refused_when_used(self) -> None:
        ticket_store.mark_used(self.db, "tok-1")
        self.assertFalse(ticket_store.mark_unlocked(self.db, "tok-1", NOW))
        self.assertIsNone(ticket_store.get_by_token(self.db, "tok-1").unlocked_at)

    def test_mark_unlocked_keeps_first_match(self) -> None:
        self.assertTrue(ticket_store.mark_unlocked(self.db, "tok-1", NOW))
        self.assertTrue(ticket_store.mark_unlocked(self.db, "tok-1", NOW + timedelta(minutes=3)))
        self.assertEqual(ticket_store.get_by_token(self.db, "tok-1").unlocked_at, NOW)

    def test_backend_errors_become_storage_error(self) -> None:
        boom = OperationalError("SELECT 1", {}, Exception("database is locked"))
        with mock.patch.object(self.db, "execute", side_effect=boom):
            with self.assertRaises(StorageError) as ctx:
                ticket_store.get_by_token(self.db, "tok-1")
        self.assertNotIn("locked", ctx.exception.message)

    def test_duplicate_token_rejected(self) -> None:
        dup = Ticket(
            token="tok-1",
            object_path="obj/b.jpg",
            pin_hash="y" * 64,
            expires_at=NOW,
            reveal_seconds=15,
            attempts=0,
            max_attempts=5,
            used=False,
        )
        with self.assertRaises(StorageError):
            ticket_store.insert(self.db, dup)
        self.assertEqual(ticket_store.get_by_token(self.db, "tok-1").object_path, "obj/a.jpg")


if __name__ == "__main__":
    unittest.main()
