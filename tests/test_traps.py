import pytest

from lc3vm.errors import DeviceError
from lc3vm.lc3 import FL_POS, FL_ZRO, HALTED, IN_PROMPT, KBSR, TRAP_OUT, TRAP_PUTS

from lc3asm import GETC, HALT, IN, LEA, OUT, PUTS, PUTSP, run, stringz


def test_puts_hello(lc3, console):
    run(lc3, [LEA(0, 2), PUTS, HALT] + stringz("HI"))
    assert console.getvalue() == "HI"
    assert lc3.state == HALTED


def test_puts_empty_string(lc3, console):
    run(lc3, [LEA(0, 2), PUTS, HALT, 0])
    assert console.getvalue() == ""


def test_puts_uses_low_byte(lc3, console):
    run(lc3, [LEA(0, 2), PUTS, HALT, 0x4141, 0])
    assert console.getvalue() == "A"


def test_putsp(lc3, console):
    lc3.set_register(0, 0x4000)
    lc3.load_words(0x4000, [0x6948, 0x0021, 0])
    run(lc3, [PUTSP, HALT])
    assert console.getvalue() == "Hi!"


def test_out(lc3, console):
    lc3.set_register(0, 0x0141)
    run(lc3, [OUT, HALT])
    assert console.getvalue() == "A"


def test_getc_does_not_touch_flags(lc3, keyboard, console):
    keyboard.feed("A")
    run(lc3, [GETC, HALT])
    assert lc3.get_register(0) == ord("A")
    assert lc3.cond == FL_ZRO
    assert console.getvalue() == ""


def test_getc_then_out_echoes(lc3, keyboard, console):
    keyboard.feed("xy")
    run(lc3, [GETC, OUT, GETC, OUT, HALT])
    assert console.getvalue() == "xy"


def test_getc_without_input_is_a_device_error(lc3):
    with pytest.raises(DeviceError):
        run(lc3, [GETC, HALT])


def test_in_prompts_and_echoes(lc3, keyboard, console):
    keyboard.feed("x")
    run(lc3, [IN, HALT])
    assert console.getvalue() == IN_PROMPT + "x"
    assert lc3.get_register(0) == ord("x")
    assert lc3.cond == FL_POS


def test_halt_stops_before_next_instruction(lc3, console):
    run(lc3, [HALT, OUT])
    assert console.getvalue() == ""
    assert lc3.instruction_count == 1


def test_dispatch_directly(lc3, console):
    lc3.set_register(0, ord("!"))
    lc3.dispatch(TRAP_OUT)
    assert console.getvalue() == "!"


def test_puts_does_not_poll_the_keyboard(lc3, keyboard, console):
    keyboard.feed("z")
    lc3.load_words(0xFDFE, [ord("A"), ord("B")])
    lc3.set_register(0, 0xFDFE)
    lc3.dispatch(TRAP_PUTS)
    assert console.getvalue() == "AB"
    assert keyboard.key_available()
    assert lc3.peek(KBSR) == 0
