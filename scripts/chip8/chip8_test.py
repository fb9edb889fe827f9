import os
import tempfile
import unittest
from unittest import mock

import pygame

import chip8
from c8interpreter import CLOCK_RATE, Interpreter


def events(*evts):
    return mock.patch.object(chip8.pygame.event, "get", return_value=list(evts))


class TestArgs(unittest.TestCase):
    def test_defaults(self):
        args = chip8.get_args(["-f", "pong.ch8"])
        self.assertEqual(args.file, "pong.ch8")
        self.assertEqual(args.clock_rate, CLOCK_RATE)
        self.assertIsNone(args.timer_rate)

    def test_timer_rate(self):
        args = chip8.get_args(["--file", "pong.ch8", "--timer-rate", "60", "--clock-rate", "700"])
        self.assertEqual(args.timer_rate, 60.0)
        self.assertEqual(args.clock_rate, 700.0)

    def test_file_is_required(self):
        with self.assertRaises(SystemExit), mock.patch("sys.stderr"):
            chip8.get_args([])


class TestLoadRom(unittest.TestCase):
    def test_load_rom(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "rom.ch8")
            with open(path, "wb") as f:
                f.write(b"\x60\x05\x70\x03")
            self.assertEqual(chip8.load_rom(path), b"\x60\x05\x70\x03")

    def test_missing_rom_exits(self):
        with self.assertRaises(SystemExit):
            chip8.main(["-f", os.path.join(tempfile.gettempdir(), "does-not-exist.ch8")])

    def test_negative_timer_rate_exits(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "rom.ch8")
            with open(path, "wb") as f:
                f.write(b"\x12\x00")
            with self.assertRaises(SystemExit) as cm:
                chip8.main(["-f", path, "--timer-rate", "-60"])
        self.assertIn("timer rate", str(cm.exception.code))


class TestEvents(unittest.TestCase):
    def setUp(self):
        self.chip = Interpreter()

    def test_key_down_and_up(self):
        with events(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_a)):
            self.assertTrue(chip8.handle_events(self.chip))
        self.assertTrue(self.chip.keypad[0xA])
        with events(pygame.event.Event(pygame.KEYUP, key=pygame.K_a)):
            self.assertTrue(chip8.handle_events(self.chip))
        self.assertFalse(self.chip.keypad[0xA])

    def test_unmapped_key_is_ignored(self):
        with events(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_z)):
            self.assertTrue(chip8.handle_events(self.chip))
        self.assertFalse(any(self.chip.keypad.keys))

    def test_quit(self):
        with events(pygame.event.Event(pygame.QUIT)):
            self.assertFalse(chip8.handle_events(self.chip))
        with events(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE)):
            self.assertFalse(chip8.handle_events(self.chip))

    def test_key_press_resolves_wait(self):
        self.chip.key_wait = 2
        with events(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_7)):
            chip8.handle_events(self.chip)
        self.assertEqual(self.chip.v_regs[2], 7)
        self.assertIsNone(self.chip.key_wait)


if __name__ == "__main__":
    unittest.main()
