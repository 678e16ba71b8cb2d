#!/usr/bin/env python3
"""
Name: cat
Description: concatenate and print files
Author: Abigail, perlpowertools@abigail.be (Original Perl Author)
License: perl
"""

import sys
import os
import io
import argparse
from collections import namedtuple
from enum import Enum

__version__ = "1.4"

EX_SUCCESS = 0
EX_FAILURE = 1

LINE_TERMINATOR = b'\n'
END_MARKER = b'$'


class Source(namedtuple('Source', ['path'])):
    """
    Describes one input to concatenate: standard input when `path` is None,
    otherwise a named file.
    """
    __slots__ = ()

    @classmethod
    def stdin(cls):
        return cls(None)

    @classmethod
    def file(cls, path):
        if path is None:
            raise ValueError("a file source needs a path")
        return cls(path)

    @classmethod
    def from_arg(cls, arg: str):
        """Maps a command-line operand to a source; '-' is standard input."""
        return cls.stdin() if arg == '-' else cls.file(arg)

    @property
    def is_stdin(self) -> bool:
        return self.path is None


class ResolveFailure:
    """A source that could not be opened, kept so it can be reported in order."""
    def __init__(self, message: str):
        self.message = message

    def __repr__(self):
        return f"ResolveFailure({self.message!r})"


class LineState(Enum):
    START_OF_LINE = 0
    MIDDLE_OF_LINE = 1


class BufferedInput:
    """
    A readable byte stream with an internal buffer that can be inspected
    before it is consumed.

    fill_buf() hands back whatever unread bytes are currently buffered,
    refilling from the underlying stream if the buffer is empty, and returns
    b'' only at end of stream. consume(n) marks the first n bytes of that
    chunk as read.
    """
    def __init__(self, stream):
        # fill_buf() needs peek().
        self.wrapped = not hasattr(stream, 'peek')
        if self.wrapped:
            stream = io.BufferedReader(stream)
        self.stream = stream

    def fill_buf(self) -> bytes:
        return self.stream.peek()

    def consume(self, count: int):
        self.stream.read(count)

    def close(self):
        self.stream.close()


class StdinInput(BufferedInput):
    """Standard input. It is shared by the whole process, so it is never closed."""
    def __init__(self):
        # With fd 0 closed at startup sys.stdin is None; read it as empty.
        super().__init__(sys.stdin.buffer if sys.stdin is not None else io.BytesIO())

    def close(self):
        # Let go of our own wrapper without closing the stream underneath.
        if self.wrapped:
            self.stream.detach()


class FileInput(BufferedInput):
    """A named file opened for binary reading with its own buffer."""
    def __init__(self, path, buffer_size=io.DEFAULT_BUFFER_SIZE):
        # FileIO refuses directories up front, so they fail here and not mid-read.
        super().__init__(io.BufferedReader(io.FileIO(path, 'r'), buffer_size))
        self.path = path


def resolve(source: Source, buffer_size=io.DEFAULT_BUFFER_SIZE):
    """
    Opens a source. Returns a BufferedInput, or a ResolveFailure with a
    "path: reason" message if the file cannot be opened.
    """
    if source.is_stdin:
        return StdinInput()
    try:
        return FileInput(source.path, buffer_size)
    except OSError as e:
        return ResolveFailure(f"{source.path}: {e.strerror or e}")


def resolve_all(sources, buffer_size=io.DEFAULT_BUFFER_SIZE):
    """Resolves each source only when the caller asks for it."""
    for source in sources:
        yield resolve(source, buffer_size)


class Concatenator:
    """
    Copies a sequence of resolved inputs to one output, optionally
    numbering lines and marking line ends.

    Lines are never assembled in memory: each buffered chunk is written out
    up to the first terminator, and the line state carries over between
    chunks and between inputs, so a line split across two files is numbered
    once.
    """
    def __init__(self, inputs, output=None, number_lines=False, show_ends=False):
        self.inputs = inputs
        self.output = output if output is not None else sys.stdout.buffer
        self.number_lines = number_lines
        self.show_ends = show_ends

    def concatenate(self) -> int:
        """Drains every input in order. Returns the number of inputs that failed to open."""
        line_count = 1
        state = LineState.START_OF_LINE
        failures = 0

        for item in self.inputs:
            if isinstance(item, ResolveFailure):
                # The diagnostic always gets a line to itself.
                if state is LineState.MIDDLE_OF_LINE:
                    self.output.write(LINE_TERMINATOR)
                # Paths that are not valid UTF-8 come back as their original bytes.
                self.output.write(os.fsencode(f"cat: {item.message}\n"))
                self.output.flush()
                state = LineState.START_OF_LINE
                failures += 1
                continue

            try:
                line_count, state = self._drain(item, line_count, state)
            finally:
                item.close()

        return failures

    def _drain(self, source: BufferedInput, line_count: int, state: LineState):
        while True:
            chunk = source.fill_buf()
            if not chunk:
                return line_count, state

            if state is LineState.START_OF_LINE and self.number_lines:
                self.output.write(b"     %d\t" % line_count)
                line_count += 1

            end = chunk.find(LINE_TERMINATOR)
            if end < 0:
                # Either the buffer ran out mid-line or the input has no final
                # newline; the next fill_buf() tells the two apart.
                self.output.write(chunk)
                consumed = len(chunk)
                state = LineState.MIDDLE_OF_LINE
            else:
                self.output.write(chunk[:end])
                if self.show_ends:
                    self.output.write(END_MARKER)
                self.output.write(LINE_TERMINATOR)
                consumed = end + 1
                state = LineState.START_OF_LINE

            source.consume(consumed)
            self.output.flush()


def cat(sources, output=None, number_lines=False, show_ends=False,
        buffer_size=io.DEFAULT_BUFFER_SIZE) -> int:
    """Concatenates the given Source descriptors. Returns the failure count."""
    concatenator = Concatenator(
        resolve_all(sources, buffer_size),
        output=output,
        number_lines=number_lines,
        show_ends=show_ends,
    )
    return concatenator.concatenate()


def main(argv=None):
    """Parses arguments and runs the cat logic."""
    parser = argparse.ArgumentParser(
        description="Concatenate FILE(s) to standard output. "
                    "With no FILE, or when FILE is -, read standard input.",
        usage="%(prog)s [-nE] [file ...]"
    )
    parser.add_argument('-n', '--number', action='store_true',
                        help='number all output lines')
    parser.add_argument('-E', '--show-ends', action='store_true',
                        help='display $ at the end of each line')
    parser.add_argument('-V', '--version', action='version',
                        version=f'%(prog)s {__version__}')
    parser.add_argument('files', nargs='*',
                        help='Files to process. Reads from stdin if none are given.')

    args = parser.parse_args(argv)
    program_name = os.path.basename(sys.argv[0])

    sources = [Source.from_arg(name) for name in args.files] or [Source.stdin()]

    try:
        failures = cat(sources, number_lines=args.number, show_ends=args.show_ends)
    except KeyboardInterrupt:
        sys.exit(130)
    except BrokenPipeError:
        # The reader went away (e.g. `cat big | head`); nothing left to report.
        sys.stderr.close()
        sys.exit(EX_FAILURE)
    except OSError as e:
        print(f"{program_name}: {e.strerror or e}", file=sys.stderr)
        sys.exit(EX_FAILURE)

    sys.exit(EX_FAILURE if failures else EX_SUCCESS)


if __name__ == "__main__":
    main()
