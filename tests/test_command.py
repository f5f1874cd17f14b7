from __future__ import annotations

import random
import unittest

from todo_threader.command import (
    COLOR_MAX,
    Command,
    Message,
    is_hex_color,
    random_color,
    strip_color,
)


class TestMessage(unittest.TestCase):
    def test_fixed_commands(self):
        self.assertEqual(Message.test().to_bytes(), b"ping")
        self.assertEqual(Message.next().to_bytes(), b"NXT")
        self.assertEqual(Message.swap().to_bytes(), b"SWP")

    def test_raw_is_verbatim(self):
        payload = b"FLW;\x00\xffanything"
        self.assertEqual(Message.raw(payload).to_bytes(), payload)

    def test_task_commands_strip_hash(self):
        for color in ("A1b2C3", "#A1b2C3"):
            with self.subTest(color=color):
                self.assertEqual(Message.following("Call Bob", color).to_bytes(), b"FLWCall Bob;A1b2C3")
                self.assertEqual(Message.add("Write report", color).to_bytes(), b"ADDWrite report;A1b2C3")

    def test_only_one_hash_is_stripped(self):
        self.assertEqual(Message.add("x", "##123456").to_bytes(), b"ADDx;#123456")

    def test_bad_color_passes_through(self):
        self.assertEqual(Message.add("x", "#FFF").to_bytes(), b"ADDx;FFF")
        self.assertEqual(Message.following("x", "purple").to_bytes(), b"FLWx;purple")

    def test_task_command_needs_task_and_color(self):
        with self.assertRaises(ValueError):
            Message(Command.Add, task="x").to_bytes()
        with self.assertRaises(ValueError):
            Message(Command.Follow, color="FFFFFF").to_bytes()

    def test_encoding(self):
        self.assertEqual(Message.add("café", "FFFFFF").to_bytes(), "ADDcafé;FFFFFF".encode("utf-8"))
        with self.assertRaises(ValueError):
            Message.add("café", "FFFFFF").to_bytes("ascii")

    def test_messages_are_immutable(self):
        msg = Message.next()
        with self.assertRaises(AttributeError):
            msg.task = "x"  # type: ignore[misc]

    def test_mutating_flags(self):
        self.assertFalse(Command.Test.mutating)
        self.assertFalse(Command.Raw.mutating)
        for cmd in (Command.Next, Command.Swap, Command.Follow, Command.Add):
            self.assertTrue(cmd.mutating)
        self.assertEqual({c for c in Command if c.takes_task}, {Command.Follow, Command.Add})


class TestColor(unittest.TestCase):
    def test_strip_color(self):
        self.assertEqual(strip_color("#00FF00"), "00FF00")
        self.assertEqual(strip_color("00FF00"), "00FF00")
        self.assertEqual(strip_color(""), "")

    def test_is_hex_color(self):
        self.assertTrue(is_hex_color("#a0B1c2"))
        self.assertTrue(is_hex_color("A0B1C2"))
        self.assertFalse(is_hex_color("#FFF"))
        self.assertFalse(is_hex_color("GGGGGG"))
        self.assertFalse(is_hex_color("#1234567"))

    def test_random_color_format_and_range(self):
        rng = random.Random(1234)
        for _ in range(500):
            color = random_color(rng)
            self.assertRegex(color, r"^#[0-9A-F]{6}$")
            self.assertTrue(0 <= int(color[1:], 16) <= COLOR_MAX)

    def test_random_color_zero_pads(self):
        class Low(random.Random):
            def randint(self, a, b):
                return 0x00AB

        class High(random.Random):
            def randint(self, a, b):
                return b

        self.assertEqual(random_color(Low()), "#0000AB")
        self.assertEqual(random_color(High()), "#FFFFFF")


if __name__ == "__main__":
    unittest.main()
