import unittest
from c8framebuffer import SCREEN_HEIGHT, SCREEN_WIDTH, Framebuffer


def lit(fb):
    return {(x, y) for y, row in enumerate(fb.get_buffer()) for x, pixel in enumerate(row) if pixel}


class TestDraw(unittest.TestCase):
    def setUp(self):
        self.fb = Framebuffer()

    def test_starts_blank(self):
        self.assertEqual(len(self.fb.get_buffer()), SCREEN_HEIGHT)
        self.assertEqual(len(self.fb.get_buffer()[0]), SCREEN_WIDTH)
        self.assertEqual(lit(self.fb), set())

    def test_msb_is_leftmost(self):
        collision = self.fb.draw(10, 5, [0b10000001])
        self.assertFalse(collision)
        self.assertEqual(lit(self.fb), {(10, 5), (17, 5)})

    def test_rows(self):
        self.fb.draw(0, 0, [0x80, 0x40])
        self.assertEqual(lit(self.fb), {(0, 0), (1, 1)})

    def test_horizontal_wraparound(self):
        self.fb.draw(60, 0, [0xFF])
        self.assertEqual({x for x, _ in lit(self.fb)}, {60, 61, 62, 63, 0, 1, 2, 3})

    def test_vertical_wraparound(self):
        self.fb.draw(0, 31, [0x80, 0x80])
        self.assertEqual({y for _, y in lit(self.fb)}, {31, 0})

    def test_collision_only_when_pixel_turns_off(self):
        self.assertFalse(self.fb.draw(0, 0, [0xF0]))
        self.assertFalse(self.fb.draw(4, 0, [0xF0]))    # lights pixels 4-7, none turned off
        self.assertTrue(self.fb.draw(3, 0, [0x80]))
        self.assertEqual(lit(self.fb), {(0, 0), (1, 0), (2, 0), (4, 0), (5, 0), (6, 0), (7, 0)})

    def test_double_draw_restores_state(self):
        self.fb.draw(20, 20, [0x01])
        before = self.fb.get_buffer()
        sprite = [0xF0, 0x90, 0xF0, 0x90, 0xF0]
        self.assertFalse(self.fb.draw(30, 10, sprite))
        self.assertTrue(self.fb.draw(30, 10, sprite))
        self.assertEqual(self.fb.get_buffer(), before)

    def test_double_draw_over_lit_pixels_reports_no_collision_on_first_pass(self):
        self.fb.draw(0, 0, [0x0F])
        self.assertTrue(self.fb.draw(0, 0, [0xFF]))     # turns 4-7 off, 0-3 on
        self.assertEqual(lit(self.fb), {(0, 0), (1, 0), (2, 0), (3, 0)})

    def test_empty_sprite(self):
        self.assertFalse(self.fb.draw(0, 0, []))
        self.assertEqual(lit(self.fb), set())


class TestClear(unittest.TestCase):
    def test_clear(self):
        fb = Framebuffer()
        fb.draw(0, 0, [0xFF] * 15)
        fb.clear()
        self.assertEqual(lit(fb), set())

    def test_snapshot_is_read_only(self):
        fb = Framebuffer()
        snapshot = fb.get_buffer()
        fb.draw(0, 0, [0x80])
        self.assertFalse(snapshot[0][0])
        self.assertTrue(fb.get_buffer()[0][0])

    def test_str(self):
        fb = Framebuffer(w=4, h=2)
        fb.draw(0, 0, [0x90])
        self.assertEqual(str(fb), "|*..*|\n|....|")


if __name__ == "__main__":
    unittest.main()
