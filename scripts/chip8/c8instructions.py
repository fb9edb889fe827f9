# CHIP-8 INSTRUCTION SET
# http://devernay.free.fr/hacks/chip8/C8TECH10.HTM#3.1
#
# every instruction is two bytes long and stored most-significant byte first
# the fields of an opcode are named after the letters of the reference:
#   x       - bits 8-11, register index
#   y       - bits 4-7, register index
#   n       - bits 0-3, 4 bit immediate
#   byte    - bits 0-7, 8 bit immediate (kk in the reference)
#   address - bits 0-11, 12 bit address (nnn in the reference)


from collections import namedtuple

from c8errors import UnrecognizedInstruction


FIELD_SHIFTS = {"x": 8, "y": 4, "n": 0, "byte": 0, "address": 0}
FIELD_MASKS = {"x": 0xF, "y": 0xF, "n": 0xF, "byte": 0xFF, "address": 0xFFF}


def _eq(self, other):
    # plain tuples compare equal across variants, e.g. Move(1, 2) == Or(1, 2)
    return type(self) is type(other) and tuple.__eq__(self, other)


def _ne(self, other):
    return not _eq(self, other)


def _hash(self):
    return hash((type(self).__name__,) + tuple(self))


def _instruction(name, pattern, fields, mnemonic):
    """build an immutable instruction variant carrying its opcode pattern and its assembler mnemonic"""
    return type(name, (namedtuple(name, fields),), {
        "__slots__": (),
        "__eq__": _eq,
        "__ne__": _ne,
        "__hash__": _hash,
        "pattern": pattern,
        "mnemonic": mnemonic,
    })


# ******************** VARIANTS SECTION
ClearDisplay = _instruction("ClearDisplay", 0x00E0, "", "CLS")
Return = _instruction("Return", 0x00EE, "", "RET")
Jump = _instruction("Jump", 0x1000, "address", "JP 0x{address:03x}")
Call = _instruction("Call", 0x2000, "address", "CALL 0x{address:03x}")
SkipIfEqualsImmediate = _instruction("SkipIfEqualsImmediate", 0x3000, "x byte", "SE V{x:X}, 0x{byte:02x}")
SkipIfNotEqualsImmediate = _instruction("SkipIfNotEqualsImmediate", 0x4000, "x byte", "SNE V{x:X}, 0x{byte:02x}")
SkipIfRegistersEqual = _instruction("SkipIfRegistersEqual", 0x5000, "x y", "SE V{x:X}, V{y:X}")
LoadImmediate = _instruction("LoadImmediate", 0x6000, "x byte", "LD V{x:X}, 0x{byte:02x}")
AddImmediate = _instruction("AddImmediate", 0x7000, "x byte", "ADD V{x:X}, 0x{byte:02x}")
Move = _instruction("Move", 0x8000, "x y", "LD V{x:X}, V{y:X}")
Or = _instruction("Or", 0x8001, "x y", "OR V{x:X}, V{y:X}")
And = _instruction("And", 0x8002, "x y", "AND V{x:X}, V{y:X}")
Xor = _instruction("Xor", 0x8003, "x y", "XOR V{x:X}, V{y:X}")
Add = _instruction("Add", 0x8004, "x y", "ADD V{x:X}, V{y:X}")
Sub = _instruction("Sub", 0x8005, "x y", "SUB V{x:X}, V{y:X}")
ShiftRight = _instruction("ShiftRight", 0x8006, "x y", "SHR V{x:X}, V{y:X}")
ReverseSub = _instruction("ReverseSub", 0x8007, "x y", "SUBN V{x:X}, V{y:X}")
ShiftLeft = _instruction("ShiftLeft", 0x800E, "x y", "SHL V{x:X}, V{y:X}")
SkipIfRegistersNotEqual = _instruction("SkipIfRegistersNotEqual", 0x9000, "x y", "SNE V{x:X}, V{y:X}")
LoadIndex = _instruction("LoadIndex", 0xA000, "address", "LD I, 0x{address:03x}")
JumpPlusRegister0 = _instruction("JumpPlusRegister0", 0xB000, "address", "JP V0, 0x{address:03x}")
LoadRandomMasked = _instruction("LoadRandomMasked", 0xC000, "x byte", "RND V{x:X}, 0x{byte:02x}")
DrawSprite = _instruction("DrawSprite", 0xD000, "x y n", "DRW V{x:X}, V{y:X}, {n}")
SkipIfKeyPressed = _instruction("SkipIfKeyPressed", 0xE09E, "x", "SKP V{x:X}")
SkipIfKeyNotPressed = _instruction("SkipIfKeyNotPressed", 0xE0A1, "x", "SKNP V{x:X}")
ReadDelayTimer = _instruction("ReadDelayTimer", 0xF007, "x", "LD V{x:X}, DT")
WaitForKey = _instruction("WaitForKey", 0xF00A, "x", "LD V{x:X}, K")
SetDelayTimer = _instruction("SetDelayTimer", 0xF015, "x", "LD DT, V{x:X}")
SetSoundTimer = _instruction("SetSoundTimer", 0xF018, "x", "LD ST, V{x:X}")
AddToIndex = _instruction("AddToIndex", 0xF01E, "x", "ADD I, V{x:X}")
LoadFontGlyphAddress = _instruction("LoadFontGlyphAddress", 0xF029, "x", "LD F, V{x:X}")
StoreBCD = _instruction("StoreBCD", 0xF033, "x", "LD B, V{x:X}")
StoreRegisters = _instruction("StoreRegisters", 0xF055, "x", "LD [I], V{x:X}")
LoadRegisters = _instruction("LoadRegisters", 0xF065, "x", "LD V{x:X}, [I]")

INSTRUCTION_SET = (
    ClearDisplay, Return, Jump, Call,
    SkipIfEqualsImmediate, SkipIfNotEqualsImmediate, SkipIfRegistersEqual,
    LoadImmediate, AddImmediate,
    Move, Or, And, Xor, Add, Sub, ShiftRight, ReverseSub, ShiftLeft,
    SkipIfRegistersNotEqual, LoadIndex, JumpPlusRegister0, LoadRandomMasked, DrawSprite,
    SkipIfKeyPressed, SkipIfKeyNotPressed,
    ReadDelayTimer, WaitForKey, SetDelayTimer, SetSoundTimer, AddToIndex,
    LoadFontGlyphAddress, StoreBCD, StoreRegisters, LoadRegisters,
)

# WATCH OUT: masks order is important!!!
# the most specific mask has to be tried first as decode stops at the first match
# 00E0/00EE take the full mask: 0nE0 with n != 0 would decode but never re-encode to itself
MASKS = {
    0xFFFF: (ClearDisplay, Return),
    0xF0FF: (SkipIfKeyPressed, SkipIfKeyNotPressed,
             ReadDelayTimer, WaitForKey, SetDelayTimer, SetSoundTimer, AddToIndex,
             LoadFontGlyphAddress, StoreBCD, StoreRegisters, LoadRegisters),
    0xF00F: (SkipIfRegistersEqual, SkipIfRegistersNotEqual,
             Move, Or, And, Xor, Add, Sub, ShiftRight, ReverseSub, ShiftLeft),
    0xF000: (Jump, Call, SkipIfEqualsImmediate, SkipIfNotEqualsImmediate,
             LoadImmediate, AddImmediate, LoadIndex, JumpPlusRegister0, LoadRandomMasked, DrawSprite),
}
PATTERNS = {mask: {variant.pattern: variant for variant in variants} for mask, variants in MASKS.items()}


# ******************** DECODER SECTION
def decode(opcode):
    """map a 16 bit opcode to its instruction, raise UnrecognizedInstruction when no pattern matches"""
    if not 0 <= opcode <= 0xFFFF:
        raise UnrecognizedInstruction(opcode)
    for mask, patterns in PATTERNS.items():
        variant = patterns.get(opcode & mask)
        if variant is not None:
            return variant(**{
                field: (opcode >> FIELD_SHIFTS[field]) & FIELD_MASKS[field]
                for field in variant._fields
            })
    raise UnrecognizedInstruction(opcode)


def encode(instruction):
    """rebuild the opcode of an instruction, the inverse of decode"""
    opcode = instruction.pattern
    for field, value in instruction._asdict().items():
        if not 0 <= value <= FIELD_MASKS[field]:
            raise ValueError(f"{type(instruction).__name__}.{field} does not fit in its opcode field: {value}")
        opcode |= value << FIELD_SHIFTS[field]
    return opcode


def disassemble(instruction):
    """return the assembler representation of an instruction, e.g. 'LD V0, 0x05'"""
    return instruction.mnemonic.format(**instruction._asdict())


def assemble(*instructions):
    """pack instructions into the big-endian byte image the interpreter loads at 0x200"""
    image = bytearray()
    for instruction in instructions:
        image += encode(instruction).to_bytes(2, "big")
    return bytes(image)
