"""
The LC-3 machine: memory, registers, and the instruction interpreter.

Words are kept unsigned, 0 to xFFFF, and read as two's complement only
where an instruction does arithmetic on them. Reading KBSR polls the
keyboard, so loads of that one address have side effects.
"""

from array import array
import sys

from .console import BufferKeyboard
from .errors import ExecutionFault, LC3Error
from .image import MEMORY_SIZE, parse_listing, parse_word, read_image, write_image

PC_START = 0x3000

## memory-mapped device registers
KBSR = 0xFE00 ## keyboard status, bit 15 = key ready
KBDR = 0xFE02 ## keyboard data

## condition flags, exactly one is set
FL_POS = 1 << 0
FL_ZRO = 1 << 1
FL_NEG = 1 << 2

TRAP_GETC = 0x20
TRAP_OUT = 0x21
TRAP_PUTS = 0x22
TRAP_IN = 0x23
TRAP_PUTSP = 0x24
TRAP_HALT = 0x25

RUNNING = "RUNNING"
HALTED = "HALTED"
FAULT = "FAULT"

IN_PROMPT = "Enter a character: "


class HEX(int):
    def __repr__(self):
        return lc_hex(self)


def lc_hex(h):
    """ Format the value in the form xFFFF """
    return 'x%04X' % lc_bin(h)


def lc_bin(v):
    """ Truncate any extra bits """
    return v & 0xFFFF


def lc_int(v):
    """ The signed value of a 16-bit word """
    v = lc_bin(v)
    if v & (1 << 15):
        return v - (1 << 16)
    return v


def plus(v1, v2):
    """ Add two words, wrapping around at 16 bits """
    return lc_bin(v1 + v2)


def sext(binary, bits):
    """
    Sign-extend the low `bits` of binary to 16 bits: if the field's
    most significant bit is set, every bit above the field is set too.
    """
    value = binary & ((1 << bits) - 1)
    if value & (1 << (bits - 1)):
        return value | (0xFFFF & ~((1 << bits) - 1))
    return value


def field(instruction, high, low):
    """ Bits high..low of the instruction, shifted down to bit 0 """
    return (instruction >> low) & ((1 << (high - low + 1)) - 1)


def ascii_str(i):
    if 32 <= i < 127:
        return "(%s, %r)" % (i, chr(i))
    return "(%s)" % i


class LC3(object):
    """
    The LC-3 computer. Loads object images and executes them.

    `keyboard` supplies KBSR/KBDR and the GETC/IN traps; `output` is
    the console the output traps write to.
    """
    mnemonic = {
        0b0000: "BR",
        0b0001: "ADD",
        0b0010: "LD",
        0b0011: "ST",
        0b0100: "JSR",
        0b0101: "AND",
        0b0110: "LDR",
        0b0111: "STR",
        0b1000: "RTI",
        0b1001: "NOT",
        0b1010: "LDI",
        0b1011: "STI",
        0b1100: "JMP",
        0b1101: "RES",
        0b1110: "LEA",
        0b1111: "TRAP",
    }
    trap_name = {
        TRAP_GETC: "GETC",
        TRAP_OUT: "OUT",
        TRAP_PUTS: "PUTS",
        TRAP_IN: "IN",
        TRAP_PUTSP: "PUTSP",
        TRAP_HALT: "HALT",
    }

    def __init__(self, keyboard=None, output=None, kernel=None):
        self.kernel = kernel
        self.keyboard = keyboard if keyboard is not None else BufferKeyboard()
        self.output = output if output is not None else sys.stdout
        # Functions for interpreting instructions:
        self.apply = {
            0b0000: self.BR,
            0b0001: self.ADD,
            0b0010: self.LD,
            0b0011: self.ST,
            0b0100: self.JSR,
            0b0101: self.AND,
            0b0110: self.LDR,
            0b0111: self.STR,
            0b1000: self.RTI,
            0b1001: self.NOT,
            0b1010: self.LDI,
            0b1011: self.STI,
            0b1100: self.JMP, # and RET
            0b1101: self.RESERVED,
            0b1110: self.LEA,
            0b1111: self.TRAP,
        }
        # Functions for formatting instructions:
        self.format = {
            0b0000: self.BR_format,
            0b0001: self.ADD_format,
            0b0010: self.LD_format,
            0b0011: self.ST_format,
            0b0100: self.JSR_format,
            0b0101: self.AND_format,
            0b0110: self.LDR_format,
            0b0111: self.STR_format,
            0b1000: self.RTI_format,
            0b1001: self.NOT_format,
            0b1010: self.LDI_format,
            0b1011: self.STI_format,
            0b1100: self.JMP_format, # and RET_format
            0b1101: self.RESERVED_format,
            0b1110: self.LEA_format,
            0b1111: self.TRAP_format,
        }
        self.traps = {
            TRAP_GETC: self.GETC,
            TRAP_OUT: self.OUT,
            TRAP_PUTS: self.PUTS,
            TRAP_IN: self.IN,
            TRAP_PUTSP: self.PUTSP,
            TRAP_HALT: self.HALT,
        }
        self.debug = False
        self.initialize()

    def initialize(self):
        self.filename = ""
        self.instruction_count = 0
        self.state = RUNNING
        self.orig = HEX(PC_START)
        self.end = HEX(PC_START)
        self.reset_memory()
        self.reset_registers()

    def reset_memory(self):
        self.memory = array('H', [0]) * MEMORY_SIZE

    def reset_registers(self):
        debug = self.debug
        self.debug = False
        self.register = {0:0, 1:0, 2:0, 3:0, 4:0, 5:0, 6:0, 7:0}
        self.set_pc(self.orig)
        self.set_nzp(0)
        self.debug = debug

    #### Register file

    def set_nzp(self, value):
        if value == 0:
            self.cond = FL_ZRO
        elif value & (1 << 15):
            self.cond = FL_NEG
        else:
            self.cond = FL_POS
        if self.debug:
            self.Print("    NZP <= %s" % self.nzp_str())

    def get_nzp(self):
        return (int(self.cond == FL_NEG),
                int(self.cond == FL_ZRO),
                int(self.cond == FL_POS))

    def nzp_str(self):
        return "".join(flag for flag, bit in zip("NZP", self.get_nzp()) if bit)

    def get_pc(self):
        return self.pc

    def set_pc(self, value):
        self.pc = HEX(lc_bin(value))
        if self.debug:
            self.Print("    PC <= %s" % lc_hex(value))

    def increment_pc(self, value=1):
        self.set_pc(plus(self.get_pc(), value))

    def get_register(self, position):
        return self.register[position]

    def set_register(self, position, value):
        self.register[position] = lc_bin(value)
        if self.debug:
            self.Print("    R%d <= %s" % (position, lc_hex(value)))

    #### Memory

    def get_memory(self, location):
        location = lc_bin(location)
        if location == KBSR:
            self.poll_keyboard()
        return self.memory[location]

    def set_memory(self, location, value):
        self.memory[lc_bin(location)] = lc_bin(value)
        if self.debug:
            self.Print("    memory[%s] <= %s" % (lc_hex(location), lc_hex(value)))

    def peek(self, location):
        """ Read memory without touching any device """
        return self.memory[lc_bin(location)]

    def poll_keyboard(self):
        if self.keyboard.key_available():
            self.memory[KBSR] = 1 << 15
            self.memory[KBDR] = lc_bin(self.keyboard.read_key())
        else:
            self.memory[KBSR] = 0

    #### Loading

    def load_words(self, origin, words):
        origin = lc_bin(origin)
        self.memory[origin:origin + len(words)] = array('H', words)
        self.orig = HEX(origin)
        self.end = HEX(origin + len(words))
        return self.orig

    def load_image(self, filename):
        """ Load an object image; returns its origin """
        origin, words = read_image(filename)
        self.filename = filename
        return self.load_words(origin, words)

    def load_listing(self, text):
        segments = parse_listing(text, self.orig)
        for origin, words in segments:
            self.load_words(origin, words)
        if segments:
            origin, words = segments[0]
            self.orig = HEX(origin)
            self.end = HEX(origin + len(words))
        return segments

    def save(self, filename, start=None, stop=None):
        start = self.orig if start is None else start
        stop = self.end if stop is None else stop
        write_image(filename, start, self.memory[start:stop])

    #### Console

    def write(self, text):
        self.output.write(text)

    def flush(self):
        self.output.flush()

    def read_key(self):
        return lc_bin(self.keyboard.read_key())

    def Print(self, *args, end="\n"):
        if self.kernel:
            self.kernel.Print(*args, end=end)
        else:
            print(*args, end=end)

    def Error(self, string):
        if self.kernel:
            self.kernel.Error(string)
        else:
            sys.stderr.write(string)

    #### Execution

    def run(self, pc=None):
        """
        Execute from pc (or the current PC) until HALT. A reserved
        opcode or bad TRAP vector raises ExecutionFault.
        """
        if pc is not None:
            self.set_pc(pc)
        self.state = RUNNING
        if self.debug:
            self.Print("Tracing! PC* is the incremented Program Counter")
            self.Print("(Instr) INSTR (PC*: xHEX)")
            self.Print("-" * 52)
        while self.state == RUNNING:
            self.step()

    def step(self):
        pc = self.get_pc()
        instruction = self.get_memory(pc)
        instr = field(instruction, 15, 12)
        self.instruction_count += 1
        self.increment_pc()
        if self.debug:
            self.Print("(%s) %s (%s*: %s)" % (
                self.instruction_count,
                self.format[instr](instruction, pc),
                lc_hex(self.get_pc()),
                lc_hex(instruction)))
        self.apply[instr](instruction)

    def fault(self, message, instruction):
        self.state = FAULT
        raise ExecutionFault(message, HEX(plus(self.get_pc(), -1)), instruction)

    def format_instruction(self, instruction, location):
        return self.format[field(instruction, 15, 12)](instruction, location)

    def BR(self, instruction):
        cond = field(instruction, 11, 9)
        if cond & self.cond:
            self.set_pc(plus(self.get_pc(), sext(instruction, 9)))

    def BR_format(self, instruction, location):
        cond = field(instruction, 11, 9)
        flags = "".join(f for f, bit in zip("nzp", (4, 2, 1)) if cond & bit)
        target = lc_hex(plus(location + 1, sext(instruction, 9)))
        if not flags:
            return "NOP ; BR never taken to %s" % target
        return "BR%s %s" % (flags, target)

    def ADD(self, instruction):
        dst = field(instruction, 11, 9)
        sr1 = self.get_register(field(instruction, 8, 6))
        if field(instruction, 5, 5):
            self.set_register(dst, plus(sr1, sext(instruction, 5)))
        else:
            self.set_register(dst, plus(sr1, self.get_register(field(instruction, 2, 0))))
        self.set_nzp(self.get_register(dst))

    def ADD_format(self, instruction, location):
        return self.alu_format("ADD", instruction)

    def AND(self, instruction):
        dst = field(instruction, 11, 9)
        sr1 = self.get_register(field(instruction, 8, 6))
        if field(instruction, 5, 5):
            self.set_register(dst, sr1 & sext(instruction, 5))
        else:
            self.set_register(dst, sr1 & self.get_register(field(instruction, 2, 0)))
        self.set_nzp(self.get_register(dst))

    def AND_format(self, instruction, location):
        return self.alu_format("AND", instruction)

    def alu_format(self, name, instruction):
        dst = field(instruction, 11, 9)
        sr1 = field(instruction, 8, 6)
        if field(instruction, 5, 5):
            return "%s R%d, R%d, #%s" % (name, dst, sr1, lc_int(sext(instruction, 5)))
        return "%s R%d, R%d, R%d" % (name, dst, sr1, field(instruction, 2, 0))

    def NOT(self, instruction):
        dst = field(instruction, 11, 9)
        src = field(instruction, 8, 6)
        self.set_register(dst, ~self.get_register(src))
        self.set_nzp(self.get_register(dst))

    def NOT_format(self, instruction, location):
        return "NOT R%d, R%d" % (field(instruction, 11, 9), field(instruction, 8, 6))

    def pc_relative(self, instruction):
        return plus(self.get_pc(), sext(instruction, 9))

    def pc_relative_format(self, name, instruction, location):
        return "%s R%d, %s" % (name, field(instruction, 11, 9),
                               lc_hex(plus(location + 1, sext(instruction, 9))))

    def LD(self, instruction):
        dst = field(instruction, 11, 9)
        self.set_register(dst, self.get_memory(self.pc_relative(instruction)))
        self.set_nzp(self.get_register(dst))

    def LD_format(self, instruction, location):
        return self.pc_relative_format("LD", instruction, location)

    def LDI(self, instruction):
        dst = field(instruction, 11, 9)
        pointer = self.get_memory(self.pc_relative(instruction))
        self.set_register(dst, self.get_memory(pointer))
        self.set_nzp(self.get_register(dst))

    def LDI_format(self, instruction, location):
        return self.pc_relative_format("LDI", instruction, location)

    def LDR(self, instruction):
        dst = field(instruction, 11, 9)
        base = field(instruction, 8, 6)
        location = plus(self.get_register(base), sext(instruction, 6))
        self.set_register(dst, self.get_memory(location))
        self.set_nzp(self.get_register(dst))

    def LDR_format(self, instruction, location):
        return "LDR R%d, R%d, #%s" % (field(instruction, 11, 9), field(instruction, 8, 6),
                                      lc_int(sext(instruction, 6)))

    def LEA(self, instruction):
        dst = field(instruction, 11, 9)
        self.set_register(dst, self.pc_relative(instruction))
        self.set_nzp(self.get_register(dst))

    def LEA_format(self, instruction, location):
        return self.pc_relative_format("LEA", instruction, location)

    def ST(self, instruction):
        src = field(instruction, 11, 9)
        self.set_memory(self.pc_relative(instruction), self.get_register(src))

    def ST_format(self, instruction, location):
        return self.pc_relative_format("ST", instruction, location)

    def STI(self, instruction):
        src = field(instruction, 11, 9)
        pointer = self.get_memory(self.pc_relative(instruction))
        self.set_memory(pointer, self.get_register(src))

    def STI_format(self, instruction, location):
        return self.pc_relative_format("STI", instruction, location)

    def STR(self, instruction):
        src = field(instruction, 11, 9)
        base = field(instruction, 8, 6)
        self.set_memory(plus(self.get_register(base), sext(instruction, 6)),
                        self.get_register(src))

    def STR_format(self, instruction, location):
        return "STR R%d, R%d, #%s" % (field(instruction, 11, 9), field(instruction, 8, 6),
                                      lc_int(sext(instruction, 6)))

    def JMP(self, instruction):
        self.set_pc(self.get_register(field(instruction, 8, 6)))

    def JMP_format(self, instruction, location):
        base = field(instruction, 8, 6)
        if base == 7:
            return "RET"
        return "JMP R%d" % base

    def JSR(self, instruction):
        temp = self.get_pc()
        if field(instruction, 11, 11): # JSR
            self.set_pc(plus(self.get_pc(), sext(instruction, 11)))
        else:                          # JSRR
            self.set_pc(self.get_register(field(instruction, 8, 6)))
        self.set_register(7, temp)

    def JSR_format(self, instruction, location):
        if field(instruction, 11, 11):
            return "JSR %s" % lc_hex(plus(location + 1, sext(instruction, 11)))
        return "JSRR R%d" % field(instruction, 8, 6)

    def RTI(self, instruction):
        self.fault("RTI is not supported: no supervisor mode", instruction)

    def RTI_format(self, instruction, location):
        return "RTI"

    def RESERVED(self, instruction):
        self.fault("attempt to execute reserved instruction", instruction)

    def RESERVED_format(self, instruction, location):
        return "RESERVED %s" % lc_hex(instruction)

    #### Traps

    def TRAP(self, instruction):
        vector = field(instruction, 7, 0)
        self.set_register(7, self.get_pc())
        self.dispatch(vector, instruction)

    def dispatch(self, vector, instruction=None):
        if vector not in self.traps:
            self.fault("invalid TRAP vector: %s" % lc_hex(vector), instruction)
        self.traps[vector]()

    def TRAP_format(self, instruction, location):
        vector = field(instruction, 7, 0)
        if vector in self.trap_name:
            return self.trap_name[vector]
        return "TRAP %s ; invalid vector" % lc_hex(vector)

    def GETC(self):
        self.set_register(0, self.read_key())

    def OUT(self):
        self.write(chr(self.get_register(0) & 0xFF))
        self.flush()

    def strings(self, packed):
        """ Characters of the NUL-terminated string at R0 """
        location = self.get_register(0)
        for _ in range(MEMORY_SIZE):
            word = self.peek(location)
            if word == 0:
                return
            yield chr(word & 0xFF)
            if packed and word >> 8:
                yield chr(word >> 8)
            location = plus(location, 1)

    def PUTS(self):
        self.write("".join(self.strings(packed=False)))
        self.flush()

    def IN(self):
        self.write(IN_PROMPT)
        self.flush()
        char = self.read_key()
        self.write(chr(char & 0xFF))
        self.flush()
        self.set_register(0, char)
        self.set_nzp(self.get_register(0))

    def PUTSP(self):
        self.write("".join(self.strings(packed=True)))
        self.flush()

    def HALT(self):
        self.flush()
        self.state = HALTED

    #### Reports

    def dump_registers(self):
        self.Print()
        self.Print("=" * 52)
        self.Print("Registers:")
        self.Print("=" * 52)
        self.Print("PC:", lc_hex(self.get_pc()))
        for r, v in zip("NZP", self.get_nzp()):
            self.Print("%s: %s" % (r, v), end=" ")
        self.Print()
        for key in range(8):
            self.Print("R%d: %s" % (key, lc_hex(self.get_register(key))), end=" ")
            if key % 4 == 3:
                self.Print()

    def dump(self, start=None, stop=None, raw=True, header=True):
        start = self.orig if start is None else start
        stop = max(self.end, start + 1) if stop is None else stop + 1
        if stop - start > 100:
            stop = start + 100
        if header:
            self.Print("=" * 52)
            self.Print("Memory dump:" if raw else "Memory disassembled:")
            self.Print("=" * 52)
        for location in range(start, min(stop, MEMORY_SIZE)):
            value = self.peek(location)
            if raw:
                self.Print("%s: %s %s" % (lc_hex(location), lc_hex(value), ascii_str(value)))
            else:
                self.Print("%s: %s  %s" % (lc_hex(location), lc_hex(value),
                                           self.format_instruction(value, location)))

    def report(self):
        if self.state == HALTED:
            self.Print("=" * 52)
            self.Print("Computation completed")
            self.Print("=" * 52)
        self.Print("Instructions:", self.instruction_count)
        self.dump_registers()

    def execute_file(self, filename):
        self.load_image(filename)
        self.instruction_count = 0
        self.run(self.orig)
        self.report()

    def execute(self, text):
        """
        Handle one Jupyter cell: a % directive, or a word listing to
        load. Returns True if it went well.
        """
        words = [word.strip() for word in text.split()]
        if not words:
            return True
        if not words[0].startswith("%"):
            try:
                segments = self.load_listing(text)
            except LC3Error as exc:
                self.Error("\nLoad error\n%s\n" % exc)
                return False
            for origin, data in segments:
                self.Print("Loaded %d words at %s" % (len(data), lc_hex(origin)))
            self.Print("Use %dump or %dis to examine; use %exe to run.")
            return True
        args = []
        if words[0] not in ("%image", "%save"):
            try:
                args = [parse_address(word) for word in words[1:]]
            except ValueError as exc:
                self.Error("%s\n" % exc)
                return False
        if words[0] == "%image":
            try:
                for filename in words[1:]:
                    origin = self.load_image(filename)
                    self.Print("Loaded %s at %s" % (filename, lc_hex(origin)))
            except LC3Error as exc:
                self.Error("failed to load image: %s\n" % exc)
                return False
            return True
        elif words[0] == "%save":
            try:
                self.save(words[1])
            except (IndexError, LC3Error, IOError) as exc:
                self.Error("Error; usage: %%save FILE (%s)\n" % exc)
                return False
            self.Print("Saved %s to %s" % (lc_hex(self.orig), words[1]))
            return True
        elif words[0] == "%dump":
            self.dump(*args[:2], raw=True)
            return True
        elif words[0] == "%dis":
            self.dump(*args[:2], raw=False)
            return True
        elif words[0] == "%regs":
            self.dump_registers()
            return True
        elif words[0] == "%d":
            self.debug = not self.debug
            self.Print("Debug is now %s" % ["off", "on"][int(self.debug)])
            return True
        elif words[0] == "%mem" and len(args) == 2:
            self.set_memory(args[0], args[1])
            self.dump(args[0], args[0])
            return True
        elif words[0] == "%reg" and len(args) == 2 and 0 <= args[0] < 8:
            self.set_register(args[0], args[1])
            self.dump_registers()
            return True
        elif words[0] == "%reset":
            self.initialize()
            self.dump_registers()
            return True
        elif words[0] == "%exe":
            self.instruction_count = 0
            self.reset_registers()
            try:
                self.run(args[0] if args else self.orig)
            except LC3Error as exc:
                address = getattr(exc, "address", None)
                if address is None:
                    address = self.get_pc() - 1
                self.Error("\nRuntime error:\n    memory %s\n%s\n" % (lc_hex(address), exc))
                return False
            self.report()
            return True
        self.Error("Invalid Interactive Magic Directive\nHint: %help\n")
        return False


def parse_address(word):
    value = parse_word(word)
    if value is None:
        raise ValueError('Not a number: "%s"' % word)
    return value
