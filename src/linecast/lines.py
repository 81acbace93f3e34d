import logging

logger = logging.getLogger(__name__)

# line terminators that can be appended to each line sent
line_breaks = {
    'crlf': '\r\n',
    'lf': '\n',
    'cr': '\r',
}


class FileLineSource:
    """
    The lines of a text file, as a sequence that can be iterated any number of times.
    Each iteration reopens the file and reads it from the start.
    Lines are yielded without their terminator. Blank lines are yielded as empty strings.

    :param path     the file to read
    :param encoding the text encoding of the file. A leading byte order mark is skipped with the default
                    'utf-8-sig'. Bytes that cannot be decoded are replaced, and so are sent as '?'.
    """
    def __init__(self, path, encoding='utf-8-sig'):
        self.path = path
        self.encoding = encoding

    def __iter__(self):
        logger.debug("reading lines from %s" % self.path)
        # universal newlines: \r\n, \n and \r all end a line
        with open(self.path, 'r', encoding=self.encoding, errors='replace', newline=None) as f:
            for line in f:
                yield line[:-1] if line.endswith('\n') else line

    def __str__(self):
        return str(self.path)


def transmission_unit(line, terminator=None) -> bytes:
    """
    Encodes a line for the wire, one byte per character.
    Characters outside ASCII are sent as '?'.

    >>> transmission_unit('abc')
    b'abc'
    >>> transmission_unit('abc', '\\r\\n')
    b'abc\\r\\n'
    >>> transmission_unit('caf\\xe9')
    b'caf?'
    """
    if terminator:
        line = line + terminator
    return line.encode('ascii', errors='replace')
