# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.

"""Chains and flat files for the tests"""

import struct

import ffldb
from ffldb.core import COIN, CBlock, COutPoint, CTransaction, CTxIn, CTxOut
from ffldb.store import BLOCK_RECORD_OVERHEAD, BlockStore

REGTEST = ffldb.RegTestParams()


class RecordingLog(object):
    """Stands in for ffldb.log.Log, keeping lines in memory"""
    def __init__(self, verbose=False):
        self.lines = []
        self.verbose = verbose

    def write(self, msg):
        self.lines.append(msg)

    def debug(self, msg):
        if self.verbose:
            self.write(msg)

    def close(self):
        pass


def make_block(prev_block, height, nBits=0x207fffff):
    """A minimal valid block on top of prev_block

    All blocks made here serialize to the same length.
    """
    coinbase = CTransaction([CTxIn(COutPoint(), struct.pack(b'<I', height) + b'\x51')],
                            [CTxOut(50*COIN, b'\x51')])
    block = CBlock(nVersion=1,
                   hashPrevBlock=prev_block.GetHash(),
                   nTime=prev_block.nTime + 600,
                   nBits=nBits,
                   vtx=[coinbase])
    block.hashMerkleRoot = block.calc_merkle_root()
    return block


def make_chain(n, params=REGTEST):
    """Genesis followed by n-1 blocks"""
    blocks = [params.GENESIS_BLOCK]
    for height in range(1, n):
        blocks.append(make_block(blocks[-1], height))
    return blocks


def record_len(block):
    return len(block.serialize()) + BLOCK_RECORD_OVERHEAD


def write_chain(base_path, blocks, params=REGTEST, max_file_size=None):
    """Write blocks to flat files, returning their BlockLocations"""
    if max_file_size is None:
        store = BlockStore(base_path, params)
    else:
        store = BlockStore(base_path, params, max_file_size=max_file_size)
    return [store.write_block(block.serialize()) for block in blocks]


def write_13_in_3_files(base_path, params=REGTEST):
    """13 records split 5, 5 and 3 across files 0, 1 and 2

    The genesis record is the larger first record of file 0; every other record
    has the same length. Returns (blocks, locations).
    """
    blocks = make_chain(13, params)
    genesis_len = record_len(blocks[0])
    block_len = record_len(blocks[1])
    assert block_len <= genesis_len < 2 * block_len
    locations = write_chain(base_path, blocks, params,
                            max_file_size=genesis_len + 4 * block_len)
    return blocks, locations


def corrupt_record(store, location):
    """Flip a byte inside the block of the record at location"""
    with open(store.file_path(location.file_num), 'r+b') as fd:
        fd.seek(location.file_offset + 8 + 40)
        b = fd.read(1)
        fd.seek(location.file_offset + 8 + 40)
        fd.write(bytes([b[0] ^ 0xff]))
