# CHIP-8 DISPLAY
# monochrome 64x32 pixels grid, sprites are XORed onto it


SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64
SPRITE_WIDTH = 8


class Framebuffer:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [[False] * w for _ in range(h)]

    def __str__(self):
        return "\n".join(
            "|" + "".join("*" if pixel else "." for pixel in row) + "|"
            for row in self.buffer
        )

    def clear(self):
        """turn every pixel OFF"""
        for row in self.buffer:
            row[:] = [False] * self.w

    def draw(self, x, y, sprite):
        """
        XOR an 8 pixels wide sprite onto the grid with its top left corner at (x, y)
        each byte of the sprite is one row, its most significant bit is the leftmost pixel
        sprites falling off an edge wrap around to the opposite one
        return True if at least one pixel went from ON to OFF (collision)
        """
        pixel_turned_off = False
        for i, sprite_byte in enumerate(sprite):
            y_coordinate = (y + i) % self.h
            row = self.buffer[y_coordinate]
            for j in range(SPRITE_WIDTH):
                if not (sprite_byte >> (SPRITE_WIDTH - 1 - j)) & 0x1:
                    continue    # XOR with 0 leaves the pixel as it is
                x_coordinate = (x + j) % self.w
                if row[x_coordinate]:
                    pixel_turned_off = True
                row[x_coordinate] = not row[x_coordinate]
        return pixel_turned_off

    def get_buffer(self):
        """read-only snapshot of the grid, indexed as [row][column]"""
        return tuple(tuple(row) for row in self.buffer)
