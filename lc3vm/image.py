"""
Program images.

An object image (.obj) is a string of big-endian 16-bit words: the
first word is the load origin, the rest are stored at consecutive
addresses starting there.

A word listing is the text form used by the Jupyter kernel:

    .ORIG x3000
    xE002           ; LEA R0, MSG
    1111 0000 0010 0010
    x0048
"""

from array import array
import sys

from .errors import LoadError

MEMORY_SIZE = 1 << 16


def is_composed_of(s, letters):
    return len(s) > 0 and all(c in letters for c in s)


def is_hex(s):
    return len(s) > 1 and s[0] in "xX" and is_composed_of(s[1:].upper(), "0123456789ABCDEF")


def is_bin(s):
    return is_composed_of(s, "01")


def parse_word(word):
    """
    x-prefixed hex, 0x-prefixed hex, #decimal or plain decimal, or
    sixteen binary digits.
    Returns None if `word` is none of those.
    """
    if is_hex(word):
        value = int(word[1:], 16)
    elif word.lower().startswith("0x") and is_hex(word[1:]):
        value = int(word[2:], 16)
    elif is_bin(word) and len(word) == 16:
        value = int(word, 2)
    elif word.startswith("#"):
        try:
            value = int(word[1:])
        except ValueError:
            return None
    else:
        try:
            value = int(word)
        except ValueError:
            return None
    if not -0x8000 <= value <= 0xFFFF:
        return None
    return value & 0xFFFF


def check_fits(origin, count, name):
    if count > MEMORY_SIZE - origin:
        raise LoadError("%s: %d words at x%04X do not fit below x10000" %
                        (name, count, origin))


def read_image(filename):
    """
    Read an object image. Returns (origin, words) with the words
    already in host byte order.
    """
    try:
        with open(filename, "rb") as fp:
            data = fp.read()
    except (IOError, OSError) as exc:
        raise LoadError("%s: %s" % (filename, exc.strerror or exc))
    if len(data) < 2:
        raise LoadError("%s: image has no origin word" % filename)
    if len(data) % 2:
        raise LoadError("%s: image ends in half a word" % filename)
    words = array("H")
    words.frombytes(data)
    if sys.byteorder == "little":
        words.byteswap()
    origin = words[0]
    words = words[1:]
    check_fits(origin, len(words), filename)
    return origin, words


def write_image(filename, origin, words):
    """ Write `words` as an object image loading at `origin` """
    check_fits(origin, len(words), filename)
    image = array("H", [origin])
    image.extend(words)
    if sys.byteorder == "little":
        image.byteswap()
    with open(filename, "wb") as fp:
        image.tofile(fp)


def parse_listing(text, origin=0x3000):
    """
    Parse a word listing into [(origin, words), ...], one segment per
    .ORIG. Words before any .ORIG load at `origin`.
    """
    segments = []
    words = None
    for line_count, line in enumerate(text.splitlines(), 1):
        line = line.split(";")[0].strip()
        if not line:
            continue
        fields = line.split()
        directive = fields[0].upper()
        if directive == ".END":
            break
        elif directive == ".ORIG":
            value = parse_word(fields[1]) if len(fields) == 2 else None
            if value is None:
                raise LoadError('Bad .ORIG at line %s: "%s"' % (line_count, line))
            origin = value
            words = array("H")
            segments.append((origin, words))
            continue
        value = parse_word("".join(fields))
        if value is None:
            raise LoadError('Not a word at line %s: "%s"' % (line_count, line))
        if words is None:
            words = array("H")
            segments.append((origin, words))
        words.append(value)
        check_fits(origin, len(words), "line %s" % line_count)
    return segments
