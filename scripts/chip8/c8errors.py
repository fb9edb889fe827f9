# CHIP-8 ERRORS
# every error is terminal: the host is expected to dump the state and stop,
# never to resume the interpreter that raised it


class Chip8Error(Exception):
    """base class of every error raised by the interpreter core"""


class UnrecognizedInstruction(Chip8Error):
    def __init__(self, opcode, pc=None):
        self.opcode = opcode
        self.pc = pc
        where = "" if pc is None else f" at 0x{pc:04x}"
        super().__init__(f"Unrecognized instruction 0x{opcode:04x}{where}")


class UnsupportedInstruction(Chip8Error, NotImplementedError):
    def __init__(self, opcode, pc=None):
        self.opcode = opcode
        self.pc = pc
        where = "" if pc is None else f" at 0x{pc:04x}"
        super().__init__(f"The instruction 0x{opcode:04x}{where} is not supported")


class AddressOutOfRange(Chip8Error, IndexError):
    def __init__(self, address, msg=None):
        self.address = address
        super().__init__(msg or f"Address 0x{address:04x} is outside of the addressable memory")


class ProgramTooLarge(Chip8Error, ValueError):
    def __init__(self, size, capacity):
        self.size = size
        self.capacity = capacity
        super().__init__(f"The program is {size} bytes long, at most {capacity} bytes fit in memory")
