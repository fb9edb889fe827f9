# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908


import math
import os
import random
from functools import wraps

from c8errors import AddressOutOfRange, ProgramTooLarge, UnrecognizedInstruction, UnsupportedInstruction
from c8framebuffer import Framebuffer
from c8instructions import (
    Add, AddImmediate, AddToIndex, And, Call, ClearDisplay, DrawSprite, Jump, JumpPlusRegister0,
    LoadFontGlyphAddress, LoadImmediate, LoadIndex, LoadRandomMasked, LoadRegisters, Move, Or,
    ReadDelayTimer, Return, ReverseSub, SetDelayTimer, SetSoundTimer, ShiftLeft, ShiftRight,
    SkipIfEqualsImmediate, SkipIfKeyNotPressed, SkipIfKeyPressed, SkipIfNotEqualsImmediate,
    SkipIfRegistersEqual, SkipIfRegistersNotEqual, StoreBCD, StoreRegisters, Sub, WaitForKey, Xor,
    decode, disassemble,
)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F
FONT_START_ADDRESS = 0x000
FONT_GLYPH_SIZE = 5

MEMORY_SIZE = 4096
ROM_START_ADDRESS = 0x200
ROM_CAPACITY = MEMORY_SIZE - ROM_START_ADDRESS
NUM_REGISTERS = 16
STACK_SIZE = 16
NUM_KEYS = 16
CLOCK_RATE = 600        # instructions per second
DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False


# ******************** UTILITIES SECTION
def asm(fn):
    """decorator to print out the ASM of the instruction being executed"""
    @wraps(fn)
    def wrapper_fn(self, instruction):
        mem_addr = self.pc         # the handler returns the next pc, it never moves self.pc itself
        next_pc = fn(self, instruction)
        if DEBUG: print(f"mem_addr: 0x{mem_addr:04x}    instruction: {disassemble(instruction)}")
        return next_pc
    return wrapper_fn


# ******************** MEMORY SECTION
# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    def __init__(self, size=MEMORY_SIZE):
        self.inner = bytearray(size)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)

    def __len__(self):
        return len(self.inner)

    def __getitem__(self, address):
        self._check(address, 1)
        return self.inner[address]

    def _check(self, address, length):
        """every address in [address, address+length) has to be inside the memory"""
        if address < 0 or address + length > len(self.inner):
            raise AddressOutOfRange(
                address,
                f"Access to {length} byte(s) at 0x{address:04x} falls outside of the {len(self.inner)} bytes of memory",
            )

    def read(self, address, length):
        self._check(address, length)
        return bytes(self.inner[address:address+length])

    def write(self, address, data):
        data = bytes(data)
        self._check(address, len(data))
        self.inner[address:address+len(data)] = data

    def load_rom(self, rom):
        """copy the program image in memory starting at 0x200"""
        if len(rom) > ROM_CAPACITY:
            raise ProgramTooLarge(len(rom), ROM_CAPACITY)
        self.inner[ROM_START_ADDRESS:ROM_START_ADDRESS+len(rom)] = bytes(rom)


# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, size=STACK_SIZE):
        self.addr_list = [0] * size
        self.pointer = 0    # number of valid entries

    def __str__(self):
        return str(self.addr_list[:self.pointer])

    def append(self, address):
        if self.pointer >= len(self.addr_list):
            raise AddressOutOfRange(
                self.pointer, f"The CHIP-8 stack can contain at most {len(self.addr_list)} addresses. Limit exceeded"
            )
        self.addr_list[self.pointer] = address
        self.pointer += 1

    def pop(self):
        if self.pointer == 0:
            raise AddressOutOfRange(-1, "Return with an empty CHIP-8 stack")
        self.pointer -= 1
        return self.addr_list[self.pointer]


# ******************** I/O SECTION
class Keypad:
    """state of the 16 keys (0x0-0xF) of the hex keypad, True while pressed"""
    def __init__(self):
        self.keys = [False] * NUM_KEYS

    def __getitem__(self, key):
        # register values above 0xF name no key, hence they are never pressed
        return 0 <= key < NUM_KEYS and self.keys[key]

    def __str__(self):
        return "".join(f"{key:X}" for key, pressed in enumerate(self.keys) if pressed) or "-"

    @staticmethod
    def _check(key):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"The CHIP-8 keypad has keys from 0x0 to 0x{NUM_KEYS-1:X}, got {key}")

    def press(self, key):
        self._check(key)
        self.keys[key] = True

    def release(self, key):
        self._check(key)
        self.keys[key] = False


# ******************** CPU SECTION
class Interpreter:
    """
    CHIP-8 virtual machine: registers, memory, stack, timers, keypad and display
    the host drives it through cycle() and the key handlers, and renders self.screen
    """
    def __init__(self, program=b"", clock_rate=CLOCK_RATE, timer_rate=None, rng=None):
        if not clock_rate > 0:
            raise ValueError(f"The clock rate has to be positive, got {clock_rate}")
        if timer_rate is not None and not timer_rate > 0:
            raise ValueError(f"The timer rate has to be positive, got {timer_rate}")
        self.mem = Memory()
        self.mem.load_rom(program)
        self.stack = Stack()
        self.v_regs = [0] * NUM_REGISTERS
        self.pc = ROM_START_ADDRESS
        self.idx = 0    # specify where the sprites reside in memory
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, active when non-zero, produces no sound
        self.key_wait = None    # index of the register waiting for a key press
        self.keypad = Keypad()
        self.screen = Framebuffer()
        self.clock_rate = clock_rate
        self.timer_rate = timer_rate    # None ticks the timers once per instruction
        self.timer_elapsed = 0.0
        self.rng = rng or random.Random()
        self.instructions = {
            ClearDisplay: self._clear_screen,
            Return: self._return,
            Jump: self._jump,
            Call: self._call_addr,
            SkipIfEqualsImmediate: self._skip_if_eq,
            SkipIfNotEqualsImmediate: self._skip_if_not_eq,
            SkipIfRegistersEqual: self._skip_if_eq_regs,
            LoadImmediate: self._set_vx,
            AddImmediate: self._add_to_vx,
            Move: self._set_vx_to_vy,
            Or: self._set_vx_or_vy,
            And: self._set_vx_and_vy,
            Xor: self._set_vx_xor_vy,
            Add: self._add_vx_vy,
            Sub: self._sub_vx_vy,
            ShiftRight: self._shr,
            ReverseSub: self._subn_vx_vy,
            ShiftLeft: self._shl,
            SkipIfRegistersNotEqual: self._skip_if_not_eq_regs,
            LoadIndex: self._set_idx,
            JumpPlusRegister0: self._jump_plus,
            LoadRandomMasked: self._random_byte_and,
            DrawSprite: self._to_screen,
            SkipIfKeyPressed: self._skip_if_pressed,
            SkipIfKeyNotPressed: self._skip_if_not_pressed,
            ReadDelayTimer: self._set_vx_dt,
            WaitForKey: self._wait_keypress,
            SetDelayTimer: self._set_dt_vx,
            SetSoundTimer: self._set_st,
            AddToIndex: self._add_to_idx,
            LoadFontGlyphAddress: self._select_char,
            StoreBCD: self._bcd_repr,
            StoreRegisters: self._store_vregs,
            LoadRegisters: self._load_vregs,
        }

    def __str__(self):
        registers = f"PC_REGISTER:0x{self.pc:04x} | IDX_REGISTER:0x{self.idx:04x} | VARIABLE_REGISTERS:{self.v_regs}"
        timers = f"DELAY_TIMER:{self.dt} | SOUND_TIMER:{self.st}"
        stack = f"STACK:{self.stack}"
        keypad = f"KEYPAD:{self.keypad} | KEY_WAIT:{'-' if self.key_wait is None else f'V{self.key_wait:X}'}"
        return f"{registers}\n{timers}\n{stack}\n{keypad}"

    @property
    def framebuffer(self):
        return self.screen

    @property
    def stack_pointer(self):
        return self.stack.pointer

    # ********** HOST INTERFACE
    def cycle(self, elapsed_seconds):
        """run as many instructions as fit in elapsed_seconds at the configured clock rate"""
        if not math.isfinite(elapsed_seconds) or elapsed_seconds < 0:
            raise ValueError(f"Elapsed time has to be a finite, non negative number: {elapsed_seconds}")
        steps = math.floor(elapsed_seconds * self.clock_rate + 0.5)    # round half away from zero
        if self.timer_rate is not None:
            self._tick_timers_by_time(elapsed_seconds)
        # the budget runs steps-1 instructions, the first one is skipped on purpose
        for _ in range(1, steps):
            if self.timer_rate is None:
                self._tick_timers()
            # a pending key wait freezes the pc until handle_key_press resolves it
            if self.key_wait is None:
                self.step()

    def step(self):
        """fetch, decode and execute a single instruction, return the executed instruction"""
        opcode = self.fetch()
        try:
            instruction = decode(opcode)
        except UnrecognizedInstruction:
            raise UnrecognizedInstruction(opcode, self.pc) from None
        execute = self.instructions.get(type(instruction))
        if execute is None:
            raise UnsupportedInstruction(opcode, self.pc)
        self.pc = execute(instruction)
        return instruction

    def fetch(self):
        """each instruction is two bytes long, most significant byte first"""
        return self.mem[self.pc] << 8 | self.mem[self.pc + 1]

    def handle_key_press(self, key):
        self.keypad.press(key)
        if self.key_wait is not None:
            self.v_regs[self.key_wait] = key
            self.key_wait = None

    def handle_key_release(self, key):
        self.keypad.release(key)

    def _tick_timers(self, ticks=1):
        self.dt = max(self.dt - ticks, 0)
        self.st = max(self.st - ticks, 0)

    def _tick_timers_by_time(self, elapsed_seconds):
        """decrement the timers at timer_rate Hz, independently from the clock rate"""
        self.timer_elapsed += elapsed_seconds
        ticks = int(self.timer_elapsed * self.timer_rate)
        if ticks:
            self.timer_elapsed -= ticks / self.timer_rate
            self._tick_timers(ticks)

    def _next(self):
        return self.pc + 0x2

    def _skip_if(self, condition):
        return self.pc + 0x4 if condition else self.pc + 0x2

    # ********** INSTRUCTIONS
    # each one returns the address of the next instruction to execute
    @asm
    def _clear_screen(self, instruction):
        self.screen.clear()
        return self._next()

    @asm
    def _return(self, instruction):
        """return from a subroutine, resuming after the call that pushed the address"""
        return self.stack.pop() + 0x2

    @asm
    def _jump(self, instruction):
        return instruction.address

    @asm
    def _call_addr(self, instruction):
        self.stack.append(self.pc)
        return instruction.address

    @asm
    def _skip_if_eq(self, instruction):
        return self._skip_if(self.v_regs[instruction.x] == instruction.byte)

    @asm
    def _skip_if_not_eq(self, instruction):
        return self._skip_if(self.v_regs[instruction.x] != instruction.byte)

    @asm
    def _skip_if_eq_regs(self, instruction):
        return self._skip_if(self.v_regs[instruction.x] == self.v_regs[instruction.y])

    @asm
    def _skip_if_not_eq_regs(self, instruction):
        return self._skip_if(self.v_regs[instruction.x] != self.v_regs[instruction.y])

    @asm
    def _set_vx(self, instruction):
        """set the value of one of the 16 variable registers, Vx"""
        self.v_regs[instruction.x] = instruction.byte
        return self._next()

    @asm
    def _add_to_vx(self, instruction):
        """add to the value already present in Vx, the carry is lost and VF is untouched"""
        x = instruction.x
        self.v_regs[x] = (self.v_regs[x] + instruction.byte) & 0xFF
        return self._next()

    @asm
    def _set_vx_to_vy(self, instruction):
        self.v_regs[instruction.x] = self.v_regs[instruction.y]
        return self._next()

    @asm
    def _set_vx_or_vy(self, instruction):
        self.v_regs[instruction.x] |= self.v_regs[instruction.y]
        return self._next()

    @asm
    def _set_vx_and_vy(self, instruction):
        self.v_regs[instruction.x] &= self.v_regs[instruction.y]
        return self._next()

    @asm
    def _set_vx_xor_vy(self, instruction):
        self.v_regs[instruction.x] ^= self.v_regs[instruction.y]
        return self._next()

    # VF is written before the result: when x is 0xF the result wins
    @asm
    def _add_vx_vy(self, instruction):
        """set Vx = Vx + Vy, VF = carry"""
        x, y = instruction.x, instruction.y
        sum = self.v_regs[x] + self.v_regs[y]
        self.v_regs[0xF] = 1 if sum > 0xFF else 0
        self.v_regs[x] = sum & 0xFF     # keep only the lowest 8 bits from the result
        return self._next()

    @asm
    def _sub_vx_vy(self, instruction):
        """set Vx = Vx - Vy, VF = 1 when Vx > Vy"""
        x, y = instruction.x, instruction.y
        first, second = self.v_regs[x], self.v_regs[y]
        self.v_regs[0xF] = 1 if first > second else 0
        self.v_regs[x] = (first - second) & 0xFF
        return self._next()

    @asm
    def _subn_vx_vy(self, instruction):
        """set Vx = Vy - Vx, VF = 1 when Vy > Vx"""
        x, y = instruction.x, instruction.y
        first, second = self.v_regs[x], self.v_regs[y]
        self.v_regs[0xF] = 1 if second > first else 0
        self.v_regs[x] = (second - first) & 0xFF
        return self._next()

    @asm
    def _shr(self, instruction):
        """set Vx = Vx SHR 1, VF = the bit shifted out"""
        x = instruction.x
        value = self.v_regs[x]
        self.v_regs[0xF] = value & 0x1
        self.v_regs[x] = value >> 1
        return self._next()

    @asm
    def _shl(self, instruction):
        """set Vx = Vx SHL 1, VF = the bit shifted out"""
        x = instruction.x
        value = self.v_regs[x]
        self.v_regs[0xF] = (value & 0x80) >> 7
        self.v_regs[x] = (value << 1) & 0xFF
        return self._next()

    @asm
    def _set_idx(self, instruction):
        self.idx = instruction.address
        return self._next()

    @asm
    def _jump_plus(self, instruction):
        return instruction.address + self.v_regs[0x0]

    @asm
    def _random_byte_and(self, instruction):
        rnd = self.rng.randint(0, 255)
        self.v_regs[instruction.x] = rnd & instruction.byte
        return self._next()

    @asm
    def _to_screen(self, instruction):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        x, y = self.v_regs[instruction.x], self.v_regs[instruction.y]
        sprite = self.mem.read(self.idx, instruction.n)
        self.v_regs[0xF] = 1 if self.screen.draw(x, y, sprite) else 0
        return self._next()

    @asm
    def _skip_if_pressed(self, instruction):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        return self._skip_if(self.keypad[self.v_regs[instruction.x]])

    @asm
    def _skip_if_not_pressed(self, instruction):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        return self._skip_if(not self.keypad[self.v_regs[instruction.x]])

    @asm
    def _set_vx_dt(self, instruction):
        self.v_regs[instruction.x] = self.dt
        return self._next()

    @asm
    def _wait_keypress(self, instruction):
        """
        wait for a key press and store its value in Vx
        the pc moves on right away, the pending wait blocks the following instructions
        """
        self.key_wait = instruction.x
        return self._next()

    @asm
    def _set_dt_vx(self, instruction):
        self.dt = self.v_regs[instruction.x]
        return self._next()

    @asm
    def _set_st(self, instruction):
        self.st = self.v_regs[instruction.x]
        return self._next()

    @asm
    def _add_to_idx(self, instruction):
        self.idx = (self.idx + self.v_regs[instruction.x]) & 0xFFFF
        return self._next()

    @asm
    def _select_char(self, instruction):
        """set I to location of sprite for digit Vx"""
        digit = self.v_regs[instruction.x] & 0xF
        self.idx = FONT_START_ADDRESS + digit * FONT_GLYPH_SIZE
        return self._next()

    @asm
    def _bcd_repr(self, instruction):
        """store the hundreds digit of Vx in memory at I, the tens digit at I+1, the ones digit at I+2"""
        value = self.v_regs[instruction.x]
        self.mem.write(self.idx, (value // 100, value // 10 % 10, value % 10))
        return self._next()

    @asm
    def _store_vregs(self, instruction):
        """store registers V0 through Vx (included) in memory starting at location I, I is left as it is"""
        x = instruction.x
        self.mem.write(self.idx, self.v_regs[:x+1])
        return self._next()

    @asm
    def _load_vregs(self, instruction):
        """read registers V0 through Vx (included) from memory starting at location I, I is left as it is"""
        x = instruction.x
        self.v_regs[:x+1] = self.mem.read(self.idx, x + 1)
        return self._next()
