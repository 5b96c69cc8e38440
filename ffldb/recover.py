#
# recover.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""Rebuild a block index by replaying the flat files

recover_blocks() is the replay loop and knows nothing about what is done with
each block. rebuild() and recover() wire it to a ChainDb, a ProgressReporter
and the staging directories.
"""

import os
import time

import ffldb
from ffldb.chaindb import ChainDb
from ffldb.progress import DEFAULT_BLOCK_INTERVAL, ProgressReporter
from ffldb.scanner import ScanCursor, Scanner
from ffldb.staging import StagingArea
from ffldb.store import BLOCKS_DIR, BlockStore, CorruptionError


def recover_blocks(scanner, accept, cursor=None, log=None):
    """Feed every block after the first to accept(block, location)

    The first record is the genesis block, which the receiving side already
    has; it is read and skipped. Replay stops at the end of the flat files, or
    quietly at the first corrupt record: everything before it has been replayed
    and the damaged tail is dropped.

    Returns the number of blocks accept() took. Any exception from the scanner
    other than CorruptionError, or from accept(), is passed on.
    """
    if cursor is None:
        cursor = ScanCursor()

    r = scanner.advance(cursor)
    if r is None:
        return 0
    cursor = r[0]

    blocks_read = 0
    while True:
        try:
            r = scanner.advance(cursor)
        except CorruptionError as err:
            if log is not None:
                log.write("Stopping replay at %r: %s" % (cursor.next_location(), err))
            break
        if r is None:
            break

        next_cursor, block, location = r
        accept(block, location)
        blocks_read += 1
        cursor = next_cursor

    if log is not None:
        log.write("Replayed %d blocks, stopped at %r" % (blocks_read, cursor))
    return blocks_read


def rebuild(db_path, old_db_path, params, log, check_pow=False,
            block_interval=DEFAULT_BLOCK_INTERVAL, clock=time.time):
    """Build a new database at db_path from the flat files in old_db_path

    Both paths are block database directories, holding the flat files and the
    metadata index.
    """
    old_store = BlockStore(old_db_path, params)

    db_size = old_store.total_size()
    log.write("found database of size %d" % db_size)

    chaindb = ChainDb(db_path, params, log, check_pow=check_pow)
    try:
        progress = ProgressReporter(db_size, log, block_interval=block_interval, clock=clock)

        def accept(block, location):
            progress.update(location)
            chaindb.accept(block, location)

        return recover_blocks(Scanner(old_store), accept, log=log)
    finally:
        chaindb.close()


def recover(path, network, log, check_pow=False, discard_staged=False,
            block_interval=DEFAULT_BLOCK_INTERVAL):
    """Recover the database of network kept under the data directory path

    Returns the number of blocks recovered. An unknown network raises
    ValueError before anything on disk is touched.
    """
    params = ffldb.get_params(network)

    staging = StagingArea(path, network)
    staging.stage()
    log.write("Database staged at %s" % staging.staged_db_path)

    try:
        blocks = rebuild(os.path.join(staging.db_path, BLOCKS_DIR),
                         os.path.join(staging.staged_db_path, BLOCKS_DIR),
                         params, log, check_pow=check_pow,
                         block_interval=block_interval)
    except Exception:
        # The original is still staged; drop the half-built database so a
        # retry starts clean.
        staging.rollback()
        raise

    kept_path = staging.finalize(discard_staged)
    if kept_path is not None:
        log.write("Original database kept at %s" % kept_path)

    return blocks
