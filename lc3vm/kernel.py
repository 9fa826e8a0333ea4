from metakernel import MetaKernel

from ._version import __version__
from .console import LineKeyboard
from .lc3 import LC3


class KernelOutput(object):
    """ Console for the output traps, written to the notebook """

    def __init__(self, kernel):
        self.kernel = kernel

    def write(self, text):
        self.kernel.Print(text, end="")

    def flush(self):
        pass


class LC3VMKernel(MetaKernel):
    implementation = 'lc3vm'
    implementation_version = __version__
    language = 'LC3 machine code'
    language_version = '0.1'
    banner = "LC-3 virtual machine - load and run LC-3 object images"
    language_info = {
        'name': 'lc3',
        'mimetype': 'text/plain',
        'file_extension': '.lc3',
    }
    lc3_magics = ["%d", "%dis", "%dump", "%exe", "%image", "%mem", "%reg",
                  "%regs", "%reset", "%save"]

    def __init__(self, *args, **kwargs):
        super(LC3VMKernel, self).__init__(*args, **kwargs)
        self.lc3 = LC3(keyboard=LineKeyboard(lambda: self.raw_input("")),
                       output=KernelOutput(self),
                       kernel=self)

    def get_usage(self):
        return """This is the LC-3 virtual machine Jupyter kernel.

A cell holds words to load into memory, one per line, in hex (x3000) or
16-digit binary; '.ORIG xNNNN' sets where the following words go.

LC3 Interactive Magic Directives:

 %d                                 - toggle instruction tracing
 %dis [STARTHEX [STOPHEX]]          - dump memory as instructions
 %dump [STARTHEX [STOPHEX]]         - list memory in hex
 %exe [HEXPC]                       - reset registers and run
 %image FILE [FILE ...]             - load object images
 %mem HEXLOCATION HEXVALUE          - set memory
 %reg REG HEXVALUE                  - set register REG to HEXVALUE
 %regs                              - show registers
 %reset                             - clear memory and registers
 %save FILE                         - save the last loaded block as an image

HEX values begin with an 'x' and are composed of 4 0-F digits or letters.

To get additional help on these items, use '%help %item'.
"""

    def get_completions(self, info):
        token = info["help_obj"]
        matches = []
        for item in (list(self.lc3.mnemonic.values()) +
                     list(self.lc3.trap_name.values()) +
                     [".ORIG", ".END"] + self.lc3_magics):
            if item.startswith(token) and item not in matches:
                matches.append(item)
        return matches

    def get_kernel_help_on(self, info, level=0, none_on_fail=False):
        expr = info["code"]
        if expr == "%d":
            return "%d - Toggle tracing of every instruction and write\n"
        elif expr == "%dis":
            return "%dis - Disassemble memory\n"
        elif expr == "%dump":
            return "%dump - Dump memory\n"
        elif expr == "%exe":
            return """%exe - Execute the program
Runs from the origin of the last load, or from the given address:
    %exe x3000
"""
        elif expr == "%image":
            return "%image - Load one or more big-endian .obj images\n"
        elif expr == "%mem":
            return "%mem - Set a memory location\n"
        elif expr == "%reg":
            return "%reg - Set a register\n"
        elif expr == "%regs":
            return "%regs - See the registers\n"
        elif expr == "%reset":
            return "%reset - Reset the LC3\n"
        elif expr == "%save":
            return "%save - Write the last loaded block to an .obj image\n"
        elif none_on_fail:
            return None
        else:
            return "No available help on '%s'" % expr

    def do_execute_file(self, filename):
        self.lc3.execute_file(filename)

    def do_execute_direct(self, code):
        try:
            self.lc3.execute(code.rstrip())
        except Exception as exc:
            self.Error(str(exc))
        except KeyboardInterrupt:
            self.Error("Keyboard Interrupt!")

    def do_is_complete(self, code):
        if code:
            if code.split("\n")[-1].strip() != "":
                return {'status': 'incomplete',
                        'indent': ''}
            else:
                return {'status': 'complete'}
        else:
            return {'status': 'incomplete'}

    def repr(self, data):
        return repr(data)


if __name__ == '__main__':
    LC3VMKernel.run_as_main()
