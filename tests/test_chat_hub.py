#!/usr/bin/env python3
"""
Unit tests for the shared chat hub.

Covers admission counting, the lock requirement of the primitives, join
ordering (history replay before the join notice), broadcast recipients,
isolation of failing peers and leave notices.
"""

import asyncio
import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tcp_chat.server.chat.chat_hub import ChatHub
from tests.fakes import FakeWriter


class TestAdmission(unittest.IsolatedAsyncioTestCase):
    """Admission slots are counted under the hub lock."""

    async def test_admit_until_cap(self):
        hub = ChatHub(max_clients=3)
        writers = [FakeWriter() for _ in range(4)]

        results = [await hub.admit(w) for w in writers]

        self.assertEqual(results, [True, True, True, False])
        self.assertEqual(hub.get_connection_count(), 3)

    async def test_release_frees_slot(self):
        hub = ChatHub(max_clients=1)
        first, second = FakeWriter(), FakeWriter()

        self.assertTrue(await hub.admit(first))
        self.assertFalse(await hub.admit(second))
        await hub.release(first)
        self.assertTrue(await hub.admit(second))

    async def test_release_is_idempotent(self):
        hub = ChatHub()
        writer = FakeWriter()
        await hub.release(writer)
        await hub.admit(writer)
        await hub.release(writer)
        await hub.release(writer)
        self.assertEqual(hub.get_connection_count(), 0)

    async def test_concurrent_admission_never_exceeds_cap(self):
        hub = ChatHub(max_clients=10)
        writers = [FakeWriter() for _ in range(25)]

        results = await asyncio.gather(*(hub.admit(w) for w in writers))

        self.assertEqual(sum(results), 10)
        self.assertEqual(hub.get_connection_count(), 10)


class TestPrimitives(unittest.IsolatedAsyncioTestCase):
    """Primitives refuse to run without the lock."""

    async def test_register_requires_lock(self):
        hub = ChatHub()
        with self.assertRaises(RuntimeError):
            hub.register(FakeWriter(), "Alice")

    async def test_append_history_requires_lock(self):
        hub = ChatHub()
        with self.assertRaises(RuntimeError):
            hub.append_history("line")

    async def test_broadcast_requires_lock(self):
        hub = ChatHub()
        with self.assertRaises(RuntimeError):
            await hub.broadcast("line")

    async def test_unregister_unknown_is_noop(self):
        hub = ChatHub()
        async with hub.lock:
            self.assertIsNone(hub.unregister(FakeWriter()))

    async def test_replay_history_in_order(self):
        hub = ChatHub()
        writer = FakeWriter()
        async with hub.lock:
            hub.append_history("one")
            hub.append_history("two")
            await hub.replay_history(writer)
        self.assertEqual(writer.text(), "one\ntwo\n")


class TestJoinAndBroadcast(unittest.IsolatedAsyncioTestCase):
    """Join, publish and leave as seen by the connected clients."""

    def setUp(self):
        self.hub = ChatHub()

    async def test_join_replays_history_before_notice(self):
        alice = FakeWriter()
        await self.hub.join(alice, "Alice")
        await self.hub.publish("[2024-01-01 00:00:00][Alice]: hi")

        bob = FakeWriter()
        await self.hub.join(bob, "Bob")

        self.assertEqual(bob.lines(), [
            "[2024-01-01 00:00:00][Alice]: hi",
            "Bob has joined the chat",
        ])
        self.assertEqual(alice.lines()[-1], "Bob has joined the chat")

    async def test_join_notice_includes_joiner(self):
        alice = FakeWriter()
        await self.hub.join(alice, "Alice")
        self.assertEqual(alice.text(), "Alice has joined the chat\n")

    async def test_notices_not_stored_in_history(self):
        alice = FakeWriter()
        await self.hub.join(alice, "Alice")
        await self.hub.publish("msg")
        await self.hub.leave(alice)
        self.assertEqual(self.hub.history, ["msg"])

    async def test_publish_reaches_only_registered(self):
        alice, bob = FakeWriter(), FakeWriter()
        naming = FakeWriter()
        await self.hub.admit(naming)
        await self.hub.join(alice, "Alice")
        await self.hub.join(bob, "Bob")

        await self.hub.publish("hello")

        self.assertIn("hello", alice.lines())
        self.assertIn("hello", bob.lines())
        self.assertEqual(naming.text(), "")

    async def test_failing_peer_does_not_block_others(self):
        broken = FakeWriter(fail=True)
        alice, bob = FakeWriter(), FakeWriter()
        await self.hub.join(broken, "Broken")
        await self.hub.join(alice, "Alice")
        await self.hub.join(bob, "Bob")

        await self.hub.publish("still delivered")

        self.assertEqual(alice.lines()[-1], "still delivered")
        self.assertEqual(bob.lines()[-1], "still delivered")
        self.assertEqual(self.hub.history, ["still delivered"])

    async def test_leave_announces_before_unregistering(self):
        alice, bob = FakeWriter(), FakeWriter()
        await self.hub.join(alice, "Alice")
        await self.hub.join(bob, "Bob")

        name = await self.hub.leave(bob)

        self.assertEqual(name, "Bob")
        self.assertEqual(alice.lines()[-1], "Bob has left the chat")
        self.assertEqual(bob.lines()[-1], "Bob has left the chat")
        self.assertEqual(self.hub.get_participants(), ["Alice"])

    async def test_leave_skips_closed_leaver(self):
        alice, bob = FakeWriter(), FakeWriter()
        await self.hub.join(alice, "Alice")
        await self.hub.join(bob, "Bob")
        bob.close()

        await self.hub.leave(bob)

        self.assertNotIn("Bob has left the chat", bob.lines())
        self.assertEqual(alice.lines()[-1], "Bob has left the chat")

    async def test_leave_without_join_sends_nothing(self):
        alice = FakeWriter()
        await self.hub.join(alice, "Alice")
        before = alice.text()

        self.assertIsNone(await self.hub.leave(FakeWriter()))
        self.assertEqual(alice.text(), before)

    async def test_history_is_append_only(self):
        for i in range(5):
            await self.hub.publish(f"line {i}")
        self.assertEqual(self.hub.history, [f"line {i}" for i in range(5)])

    async def test_concurrent_joins_see_every_line_once(self):
        joiners = [FakeWriter(yielding=True) for _ in range(5)]
        publishes = [self.hub.publish(f"msg {i}") for i in range(20)]
        joins = [self.hub.join(w, f"user{i}") for i, w in enumerate(joiners)]

        # Interleave joins between publishes so they race the broadcasts
        calls = publishes[:4] + [joins[0]] + publishes[4:8] + joins[1:3] \
            + publishes[8:14] + [joins[3]] + publishes[14:] + [joins[4]]
        await asyncio.gather(*calls)

        self.assertEqual(len(self.hub.history), 20)
        for writer in joiners:
            chat_lines = [line for line in writer.lines() if line.startswith("msg ")]
            self.assertEqual(len(chat_lines), len(set(chat_lines)))
            self.assertEqual(chat_lines, self.hub.history[-len(chat_lines):])
            # History is never trimmed, so replay plus live delivery covers all of it
            self.assertEqual(chat_lines, self.hub.history)

    async def test_join_notice_follows_replayed_lines(self):
        writer = FakeWriter(yielding=True)
        await asyncio.gather(
            self.hub.publish("msg 0"),
            self.hub.join(writer, "Alice"),
            self.hub.publish("msg 1"),
        )

        lines = writer.lines()
        self.assertEqual(lines, ["msg 0", "Alice has joined the chat", "msg 1"])

    async def test_close_all_closes_admitted(self):
        writers = [FakeWriter() for _ in range(3)]
        for w in writers:
            await self.hub.admit(w)

        await self.hub.close_all()

        self.assertTrue(all(w.closed for w in writers))


class TestWriteTimeout(unittest.IsolatedAsyncioTestCase):
    """A peer that stops reading cannot hold the lock forever when write_timeout is set."""

    async def test_stalled_peer_is_dropped(self):
        hub = ChatHub(write_timeout=0.05)
        alice = FakeWriter()
        stalled = FakeWriter(stall=True)
        await hub.join(alice, "Alice")
        await asyncio.wait_for(hub.join(stalled, "Stalled"), timeout=2)

        await asyncio.wait_for(hub.publish("still flowing"), timeout=2)

        self.assertTrue(stalled.closed)
        self.assertEqual(alice.lines()[-1], "still flowing")
        self.assertTrue(await asyncio.wait_for(hub.admit(FakeWriter()), timeout=2))

    async def test_no_timeout_by_default(self):
        hub = ChatHub()
        stalled = FakeWriter(stall=True)
        async with hub.lock:
            hub.register(stalled, "Stalled")

        with self.assertRaises(asyncio.TimeoutError):
            await asyncio.wait_for(hub.publish("blocked"), timeout=0.1)
        self.assertFalse(stalled.closed)


if __name__ == '__main__':
    unittest.main()
