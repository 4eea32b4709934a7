import unittest
from datetime import date, datetime, timedelta

from fincoach import conversations
from fincoach.errors import ConversationNotFoundError
from fincoach.results import Deleted, NotFound
from fincoach.schemas import ConversationOut, MessageCreate, MessageMetadata
from tests.helpers import make_session_factory


class TestConversations(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()

    def tearDown(self):
        self.db.close()

    def test_default_title(self):
        self.assertEqual(conversations.default_title(datetime(2025, 3, 5, 14, 0)), "Chat 3/5/2025")

    def test_messages_keep_insertion_order(self):
        convo = conversations.create_conversation(self.db)
        for i, role in enumerate(["user", "assistant", "user"]):
            conversations.add_message(self.db, convo.id, MessageCreate(role=role, content=f"m{i}"))

        loaded = conversations.get_conversation(self.db, convo.id)
        self.assertEqual([m.content for m in loaded.messages], ["m0", "m1", "m2"])
        self.assertEqual([m.position for m in loaded.messages], [0, 1, 2])

    def test_message_metadata_round_trips(self):
        convo = conversations.create_conversation(self.db, "Budget talk")
        conversations.add_message(
            self.db, convo.id,
            MessageCreate(role="assistant", content="hi", metadata=MessageMetadata(insight_generated=True)),
        )

        out = ConversationOut.model_validate(conversations.get_conversation(self.db, convo.id))
        self.assertEqual(out.title, "Budget talk")
        self.assertTrue(out.messages[0].metadata.insight_generated)
        self.assertIsNone(out.messages[0].metadata.action_taken)

    def test_add_message_to_missing_conversation(self):
        with self.assertRaises(ConversationNotFoundError):
            conversations.add_message(self.db, "missing", MessageCreate(role="user", content="hello"))

    def test_list_is_most_recently_updated_first(self):
        first = conversations.create_conversation(self.db, "first")
        second = conversations.create_conversation(self.db, "second")
        second.updated_at = datetime.utcnow() - timedelta(days=1)
        self.db.commit()

        conversations.add_message(self.db, first.id, MessageCreate(role="user", content="bump"))

        self.assertEqual([c.title for c in conversations.get_conversations(self.db)], ["first", "second"])
        self.assertEqual(conversations.get_most_recent_conversation(self.db).id, first.id)

    def test_rename(self):
        convo = conversations.create_conversation(self.db)
        self.assertEqual(conversations.update_conversation_title(self.db, convo.id, "Renamed").title, "Renamed")
        self.assertIsNone(conversations.update_conversation_title(self.db, "missing", "x"))

    def test_clear_keeps_conversation(self):
        convo = conversations.create_conversation(self.db)
        conversations.add_message(self.db, convo.id, MessageCreate(role="user", content="hello"))

        cleared = conversations.clear_conversation(self.db, convo.id)

        self.assertEqual(cleared.messages, [])
        self.assertIsNotNone(conversations.get_conversation(self.db, convo.id))

    def test_delete(self):
        convo = conversations.create_conversation(self.db)
        conversations.add_message(self.db, convo.id, MessageCreate(role="user", content="hello"))

        self.assertEqual(conversations.delete_conversation(self.db, convo.id), Deleted(convo.id))
        self.assertIsInstance(conversations.delete_conversation(self.db, convo.id), NotFound)

    def test_current_conversation_reused_same_day(self):
        today = datetime.utcnow().date()
        first = conversations.get_or_create_current_conversation(self.db, today)
        again = conversations.get_or_create_current_conversation(self.db, today)
        self.assertEqual(first.id, again.id)

    def test_current_conversation_new_each_day(self):
        convo = conversations.create_conversation(self.db)
        convo.created_at = datetime(2025, 3, 1, 9, 0)
        self.db.commit()

        current = conversations.get_or_create_current_conversation(self.db, date(2025, 3, 2))
        self.assertNotEqual(current.id, convo.id)


if __name__ == "__main__":
    unittest.main()
