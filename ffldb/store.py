#
# store.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""Flat block files

Blocks are appended to a sequence of numbered files, each no larger than
max_file_size. Every block is stored as a record:

    network magic    4 bytes
    block length     4 bytes, little-endian
    block            block length bytes
    checksum         4 bytes, first four bytes of Hash(magic+length+block)

Nothing in here trusts an index: the size of a file on disk is the boundary of
the data in it, and the first missing file number is the end of the sequence.
"""

import os
import struct

from ffldb.core.serialize import Hash, ImmutableSerializable, MAX_SIZE, ser_read

BLOCKS_DIR = 'blocks_ffldb'

# magic + length + checksum
BLOCK_RECORD_OVERHEAD = 12

MAX_BLOCK_FILE_SIZE = 512 * 1024 * 1024


class StoreError(Exception):
    """Base class for flat file store errors"""


class CorruptionError(StoreError):
    """A record in a flat file failed a consistency check"""


class BlockFileNotFoundError(StoreError):
    """A flat file that should hold a record does not exist"""


def block_file_path(base_path, file_num):
    """Path of flat file number file_num"""
    return os.path.join(base_path, '%09d.fdb' % file_num)


def file_size(path):
    """Size of the file at path, None if it does not exist"""
    try:
        return os.stat(path).st_size
    except FileNotFoundError:
        return None


class BlockLocation(ImmutableSerializable):
    """Position of one record in the flat files

    block_len is the length of the whole record, block plus
    BLOCK_RECORD_OVERHEAD.
    """
    __slots__ = ['file_num', 'file_offset', 'block_len']

    def __init__(self, file_num=0, file_offset=0, block_len=0):
        for name, value in (('file_num', file_num),
                            ('file_offset', file_offset),
                            ('block_len', block_len)):
            if not (0 <= value <= 0xffffffff):
                raise ValueError('BlockLocation: %s must be in range 0x0 to 0xffffffff; got %x' % (name, value))
            object.__setattr__(self, name, value)

    @classmethod
    def stream_deserialize(cls, f):
        file_num, file_offset, block_len = struct.unpack(b'<III', ser_read(f, 12))
        return cls(file_num, file_offset, block_len)

    def stream_serialize(self, f):
        f.write(struct.pack(b'<III', self.file_num, self.file_offset, self.block_len))

    def __repr__(self):
        return 'BlockLocation(%i, %i, %i)' % (self.file_num, self.file_offset, self.block_len)


class BlockStore(object):
    """Reads and appends block records in a directory of flat files"""

    def __init__(self, base_path, params, max_file_size=MAX_BLOCK_FILE_SIZE):
        self.base_path = base_path
        self.magic = params.MESSAGE_START
        self.max_file_size = max_file_size

        # Appends continue at the end of the last existing file.
        self.write_file_num = 0
        self.write_offset = 0
        for file_num, size in self.iter_files():
            self.write_file_num = file_num
            self.write_offset = size

    def file_path(self, file_num):
        return block_file_path(self.base_path, file_num)

    def iter_files(self):
        """Yield (file_num, size) for each flat file up to the first gap"""
        file_num = 0
        while True:
            size = file_size(self.file_path(file_num))
            if size is None:
                return
            yield file_num, size
            file_num += 1

    def file_count(self):
        return sum(1 for _ in self.iter_files())

    def total_size(self):
        return sum(size for _, size in self.iter_files())

    def read_record(self, file_num, file_offset, expected_hash=None):
        """Read the block stored in the record at file_num:file_offset

        Returns the raw block bytes, without the record framing.

        expected_hash - Hash the block header must have. None requests no hash
                        check.

        Raises CorruptionError if the record is damaged and
        BlockFileNotFoundError if the file does not exist.
        """
        path = self.file_path(file_num)
        try:
            fd = open(path, 'rb')
        except FileNotFoundError:
            raise BlockFileNotFoundError('Block file %s does not exist' % path)

        with fd:
            file_len = os.fstat(fd.fileno()).st_size
            fd.seek(file_offset)

            hdr = fd.read(8)
            if len(hdr) < 8:
                raise CorruptionError('Short record header at %d:%d' % (file_num, file_offset))

            if hdr[:4] != self.magic:
                raise CorruptionError('Bad network magic %r at %d:%d' % (hdr[:4], file_num, file_offset))

            block_len = struct.unpack(b'<I', hdr[4:])[0]
            if block_len > MAX_SIZE:
                raise CorruptionError('Block length %d at %d:%d exceeds MAX_SIZE' % (block_len, file_num, file_offset))
            if file_offset + block_len + BLOCK_RECORD_OVERHEAD > file_len:
                raise CorruptionError('Record at %d:%d runs past end of file (%d bytes)' % (file_num, file_offset, file_len))

            raw = fd.read(block_len)
            checksum = fd.read(4)
            if len(raw) < block_len or len(checksum) < 4:
                raise CorruptionError('Short read of record at %d:%d' % (file_num, file_offset))

        if Hash(hdr + raw)[:4] != checksum:
            raise CorruptionError('Checksum mismatch for record at %d:%d' % (file_num, file_offset))

        if expected_hash is not None and Hash(raw[:80]) != expected_hash:
            raise CorruptionError('Block at %d:%d does not have the expected hash' % (file_num, file_offset))

        return raw

    def read_block(self, location, expected_hash=None):
        """Read the block at a BlockLocation"""
        raw = self.read_record(location.file_num, location.file_offset, expected_hash)
        if len(raw) + BLOCK_RECORD_OVERHEAD != location.block_len:
            raise CorruptionError('Record at %d:%d is %d bytes, expected %d' %
                                  (location.file_num, location.file_offset,
                                   len(raw) + BLOCK_RECORD_OVERHEAD, location.block_len))
        return raw

    def write_block(self, raw):
        """Append a block, returning the BlockLocation it was written to"""
        record_len = len(raw) + BLOCK_RECORD_OVERHEAD

        if self.write_offset > 0 and self.write_offset + record_len > self.max_file_size:
            self.write_file_num += 1
            self.write_offset = 0

        os.makedirs(self.base_path, exist_ok=True)

        hdr = self.magic + struct.pack(b'<I', len(raw))
        with open(self.file_path(self.write_file_num), 'ab') as fd:
            fd.write(hdr)
            fd.write(raw)
            fd.write(Hash(hdr + raw)[:4])

        location = BlockLocation(self.write_file_num, self.write_offset, record_len)
        self.write_offset += record_len
        return location
