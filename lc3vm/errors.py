"""
Exceptions raised by the LC-3 machine.

Every failure is terminal for the current run; nothing here is retried.
"""


class LC3Error(Exception):
    pass


class LoadError(LC3Error, IOError):
    """ The image file is missing, unreadable, truncated or too large """
    pass


class ExecutionFault(LC3Error, ValueError):
    """
    The running program executed a reserved opcode or an unknown TRAP
    vector. `address` is where the faulting instruction was fetched
    from.
    """
    def __init__(self, message, address=None, instruction=None):
        super(ExecutionFault, self).__init__(message)
        self.address = address
        self.instruction = instruction


class DeviceError(LC3Error, IOError):
    """ The keyboard could not deliver a keystroke """
    pass
