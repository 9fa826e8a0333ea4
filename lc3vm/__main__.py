"""
Run LC-3 object images from the command line:

    lc3vm [-d] [-v] [--pc ADDR] IMAGE [IMAGE ...]
"""

import argparse
import signal
import sys

from .console import get_keyboard
from .errors import DeviceError, ExecutionFault, LoadError
from .lc3 import LC3, lc_hex, parse_address

EXIT_OK = 0
EXIT_LOAD = 1
EXIT_USAGE = 2
EXIT_FAULT = 3
EXIT_DEVICE = 4
EXIT_INTERRUPT = -2


def address(text):
    try:
        return parse_address(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def make_parser():
    parser = argparse.ArgumentParser(
        prog="lc3vm",
        description="Run LC-3 object images.",
        epilog="Images are big-endian .obj files; later images may overwrite earlier ones.")
    parser.add_argument("images", nargs="*", metavar="IMAGE",
                        help="object image to load")
    parser.add_argument("--pc", type=address, default=None,
                        help="start address, e.g. x3000 (default: origin of the first image)")
    parser.add_argument("-d", "--debug", action="store_true",
                        help="trace every instruction and register write")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="print instruction count and registers after HALT")
    return parser


def main(argv=None, keyboard=None, output=None):
    parser = make_parser()
    args = parser.parse_args(argv)
    if not args.images:
        parser.print_usage(sys.stderr)
        sys.stderr.write("lc3vm: no image file given\n")
        return EXIT_USAGE

    signal.signal(signal.SIGINT, signal.default_int_handler)
    lc3 = LC3(output=output)
    lc3.debug = args.debug
    try:
        return run_images(lc3, args, keyboard)
    except KeyboardInterrupt:
        lc3.Print()
        return EXIT_INTERRUPT


def run_images(lc3, args, keyboard=None):
    """ Load every image and run; returns the exit code """
    origins = []
    for filename in args.images:
        try:
            origins.append(lc3.load_image(filename))
        except LoadError as exc:
            lc3.Error("failed to load image: %s\n" % exc)
            return EXIT_LOAD

    try:
        lc3.keyboard = keyboard if keyboard is not None else get_keyboard()
    except DeviceError as exc:
        lc3.Error("Keyboard error: %s\n" % exc)
        return EXIT_DEVICE

    try:
        with lc3.keyboard:
            lc3.run(args.pc if args.pc is not None else origins[0])
    except ExecutionFault as exc:
        lc3.flush()
        lc3.Error("Runtime error at %s: %s\n" % (lc_hex(exc.address), exc))
        return EXIT_FAULT
    except DeviceError as exc:
        lc3.flush()
        lc3.Error("Keyboard error: %s\n" % exc)
        return EXIT_DEVICE

    if args.verbose:
        lc3.report()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
