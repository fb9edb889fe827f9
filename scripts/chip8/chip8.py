# CHIP-8 HOST
# pygame front end around the interpreter core: loads the ROM, maps the keyboard
# on the hex keypad, paces the core with the wall clock and renders its display
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import argparse
import sys

import os
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_0, K_1, K_2, K_3,
    K_4, K_5, K_6, K_7,
    K_8, K_9, K_a, K_b,
    K_c, K_d, K_e, K_f,
)

from c8errors import Chip8Error
from c8framebuffer import SCREEN_HEIGHT, SCREEN_WIDTH
from c8interpreter import CLOCK_RATE, DEBUG, Interpreter


# ******************** STATIC SECTION
KEY_MAPPINGS = {
    K_0: 0x0,
    K_1: 0x1,
    K_2: 0x2,
    K_3: 0x3,
    K_4: 0x4,
    K_5: 0x5,
    K_6: 0x6,
    K_7: 0x7,
    K_8: 0x8,
    K_9: 0x9,
    K_a: 0xA,
    K_b: 0xB,
    K_c: 0xC,
    K_d: 0xD,
    K_e: 0xE,
    K_f: 0xF,
}

SCALE = 15
FPS = 60
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)


# ******************** UTILITIES SECTION
def get_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 interpreter")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--clock-rate", type=float, default=CLOCK_RATE, help="instructions executed per second")
    parser.add_argument("--timer-rate", type=float, default=None,
                        help="tick the delay/sound timers at this rate (Hz) instead of once per instruction")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in screen pixels of a CHIP-8 pixel")
    parser.add_argument("--fps", type=int, default=FPS, help="frames rendered per second")
    return parser.parse_args(argv)

def load_rom(path):
    """read the whole ROM file, the interpreter validates its size"""
    with open(path, mode='rb') as f:
        rom = f.read()
    if DEBUG: print(f"The ROM at path {path} has been loaded successfully")
    return rom


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode(
            (w * self.scale, h * self.scale),
        )
        self.surface.fill(self.background)

    def render(self, buffer):
        """paint the lit pixels of a framebuffer snapshot, the change is visible after refresh"""
        self.surface.fill(self.background)
        for y, row in enumerate(buffer):
            for x, pixel in enumerate(row):
                if pixel:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )

    @staticmethod
    def refresh():
        pygame.display.flip()


def handle_events(chip):
    """forward keypad events to the interpreter, return False when the user asked to quit"""
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            elif event.key in KEY_MAPPINGS:
                chip.handle_key_press(KEY_MAPPINGS[event.key])
        elif event.type == pygame.KEYUP:
            if event.key in KEY_MAPPINGS:
                chip.handle_key_release(KEY_MAPPINGS[event.key])
    return True


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    try:
        chip = Interpreter(load_rom(args.file), clock_rate=args.clock_rate, timer_rate=args.timer_rate)
    except (OSError, ValueError, Chip8Error) as e:
        sys.exit(f"Can't load {args.file}: {e}")
    # pygame initialization
    pygame.init()
    clock = pygame.time.Clock()
    pygame.display.set_caption(os.path.basename(args.file))
    screen = Screen(s=args.scale)
    # emulation loop
    try:
        while handle_events(chip):
            elapsed = clock.tick(args.fps) / 1000     # milliseconds since the previous frame
            chip.cycle(elapsed)
            screen.render(chip.framebuffer.get_buffer())
            screen.refresh()
    except Chip8Error as e:
        sys.exit(f"********** THE EMULATOR CRASHED: {e}\n{chip}")
    finally:
        pygame.quit()


if __name__ == "__main__":
    main()
