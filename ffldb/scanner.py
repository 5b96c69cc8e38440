#
# scanner.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""Sequential scan of the flat files

Block boundaries are found from the on-disk layout alone: each record says how
long it is, and the size of its file says when to move on to the next one.
"""

from ffldb.core import CBlock
from ffldb.store import BLOCK_RECORD_OVERHEAD, BlockLocation, file_size


class ScanCursor(object):
    """Where the next record will be read from

    file_len == 0 means the length of file_num is not known yet and has to be
    looked up on disk. Cursors are immutable; Scanner.advance() returns a new
    one.
    """
    __slots__ = ['file_num', 'file_offset', 'file_len']

    def __init__(self, file_num=0, file_offset=0, file_len=0):
        object.__setattr__(self, 'file_num', file_num)
        object.__setattr__(self, 'file_offset', file_offset)
        object.__setattr__(self, 'file_len', file_len)

    def __setattr__(self, name, value):
        raise AttributeError('Object is immutable')

    def __delattr__(self, name):
        raise AttributeError('Object is immutable')

    def next_location(self):
        """BlockLocation of the next record, length not yet known"""
        return BlockLocation(self.file_num, self.file_offset, 0)

    def _astuple(self):
        return (self.file_num, self.file_offset, self.file_len)

    def __eq__(self, other):
        if not isinstance(other, ScanCursor):
            return NotImplemented
        return self._astuple() == other._astuple()

    def __ne__(self, other):
        return not (self == other)

    def __hash__(self):
        return hash(self._astuple())

    def __repr__(self):
        return 'ScanCursor(%i, %i, %i)' % self._astuple()


class Scanner(object):
    """Walks the records of a BlockStore in file order

    The scanner holds no position of its own; every call to advance() takes a
    cursor and hands back the next one. A scanner without a store is empty.
    """

    def __init__(self, store, deserialize=CBlock.deserialize):
        self.store = store
        self.deserialize = deserialize

    def advance(self, cursor):
        """Read the record at cursor

        Returns (next_cursor, block, location), where location is the record
        just read, or None once there is no file left to read from.

        CorruptionError from the store and SerializationError from the
        deserializer are passed on to the caller.
        """
        if self.store is None:
            return None

        file_len = cursor.file_len
        if file_len == 0:
            file_len = file_size(self.store.file_path(cursor.file_num))
            if file_len is None:
                return None

        raw = self.store.read_record(cursor.file_num, cursor.file_offset)
        block = self.deserialize(raw)

        location = BlockLocation(cursor.file_num, cursor.file_offset,
                                 len(raw) + BLOCK_RECORD_OVERHEAD)

        next_offset = cursor.file_offset + location.block_len
        if next_offset == file_len:
            next_cursor = ScanCursor(cursor.file_num + 1, 0, 0)
        else:
            next_cursor = ScanCursor(cursor.file_num, next_offset, file_len)

        return next_cursor, block, location

    def iter_blocks(self, cursor=None):
        """Yield (block, location) for every record from cursor onwards"""
        if cursor is None:
            cursor = ScanCursor()
        while True:
            r = self.advance(cursor)
            if r is None:
                return
            cursor, block, location = r
            yield block, location
