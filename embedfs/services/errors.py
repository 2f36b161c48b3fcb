from __future__ import annotations


class ClosedFileError(ValueError):
    def __init__(self, message: str = 'I/O operation on closed file'):
        super().__init__(message)


class InvalidOffsetError(ValueError):
    def __init__(self, offset: int):
        super().__init__(f'invalid offset: {offset}')
        self.offset = offset


class InvalidWhenceError(ValueError):
    def __init__(self, whence: int):
        super().__init__(f'invalid whence: {whence}')
        self.whence = whence


class InvalidDirectoryError(NotADirectoryError):
    def __init__(self, name: str):
        super().__init__(f'not a directory: {name}')
        self.name = name


class InvalidCountError(ValueError):
    def __init__(self, count: int, available: int):
        super().__init__(f'invalid count: {count} (directory has {available} entries)')
        self.count = count
        self.available = available
