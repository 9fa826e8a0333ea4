"""
Keyboard devices behind the LC-3 KBSR/KBDR registers.

A keyboard answers two questions: is a key waiting (never blocks), and
what is the next key (blocks until there is one). Used as a context
manager, a terminal keyboard switches the terminal to unbuffered input
on entry and puts it back on exit.
"""

import os
import sys

try:
    import select
    import termios
    import tty
except ImportError: # Windows
    termios = None

try:
    import msvcrt
except ImportError: # everything else
    msvcrt = None

from .errors import DeviceError


class Keyboard(object):

    def key_available(self):
        raise NotImplementedError

    def read_key(self):
        raise NotImplementedError

    def setup(self):
        pass

    def restore(self):
        pass

    def __enter__(self):
        self.setup()
        return self

    def __exit__(self, *exc_info):
        self.restore()
        return False


class BufferKeyboard(Keyboard):
    """
    Keystrokes from memory. Feed it text, bytes or character codes.
    """
    def __init__(self, data=""):
        self.buffer = []
        self.feed(data)

    def feed(self, data):
        for item in data:
            if isinstance(item, str):
                item = ord(item)
            self.buffer.append(item & 0xFF)

    def key_available(self):
        return len(self.buffer) > 0

    def read_key(self):
        if not self.buffer:
            raise DeviceError("end of keyboard input")
        return self.buffer.pop(0)


class LineKeyboard(Keyboard):
    """
    Keystrokes from a line-oriented source such as a Jupyter kernel's
    raw_input. The keyboard always reports ready, so a program polling
    KBSR gets a key on its first poll and that read prompts for a line.
    An empty line is a NUL.
    """
    def __init__(self, readline):
        self.readline = readline
        self.char_buffer = []

    def key_available(self):
        return True

    def read_key(self):
        if len(self.char_buffer) == 0:
            data = self.readline()
            if data is None:
                raise DeviceError("no input available")
            data = data.replace("\\n", "\n")
            if len(data) == 0:
                self.char_buffer = [0]
            else:
                self.char_buffer = [ord(char) & 0xFF for char in data]
        return self.char_buffer.pop(0)


class UnixKeyboard(Keyboard):
    """
    stdin in cbreak mode (no line buffering, no echo); polled with a
    zero-timeout select. Ctrl-C still raises SIGINT in cbreak mode.
    """
    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self.fd = self.stream.fileno()
        self.saved = None

    def setup(self):
        if os.isatty(self.fd):
            self.saved = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)

    def restore(self):
        if self.saved is not None:
            termios.tcsetattr(self.fd, termios.TCSANOW, self.saved)
            self.saved = None

    def key_available(self):
        readable, _, _ = select.select([self.fd], [], [], 0)
        return len(readable) > 0

    def read_key(self):
        try:
            data = os.read(self.fd, 1)
        except OSError as exc:
            raise DeviceError("cannot read keyboard: %s" % exc)
        if not data:
            raise DeviceError("end of keyboard input")
        return data[0]


class WindowsKeyboard(Keyboard):
    """ The Windows console through msvcrt; getwch does not echo """

    def key_available(self):
        return bool(msvcrt.kbhit())

    def read_key(self):
        try:
            char = msvcrt.getwch()
        except OSError as exc:
            raise DeviceError("cannot read keyboard: %s" % exc)
        return ord(char) & 0xFF


def get_keyboard():
    """ The terminal keyboard for this platform """
    if msvcrt is not None:
        return WindowsKeyboard()
    if termios is None:
        raise DeviceError("no keyboard support on platform %r" % sys.platform)
    return UnixKeyboard()
