#
# chaindb.py - block index rebuilt from replayed blocks
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

import os

import plyvel

from ffldb.core import CBlock, CheckBlock, ValidationError, b2lx, lx
from ffldb.core.serialize import compact_to_work
from ffldb.store import BlockLocation, BlockStore

METADATA_DIR = 'metadata'


class ChainDbError(Exception):
	"""The index database cannot be used"""


class AcceptBlockError(ValidationError):
	"""A block does not fit onto the chain built so far"""


class BlkMeta(object):
	def __init__(self, height=-1, work=0):
		self.height = height
		self.work = work

	def deserialize(self, s):
		l = s.split()
		if len(l) < 2:
			raise ChainDbError("Bad block metadata %r" % (s,))
		self.height = int(l[0])
		self.work = int(l[1], 16)

	def serialize(self):
		return ('%d %x' % (self.height, self.work)).encode()

	def __repr__(self):
		return "BlkMeta(height %d, work %x)" % (self.height, self.work)


class HeightIdx(object):
	def __init__(self):
		self.blocks = []

	def deserialize(self, s):
		self.blocks = [lx(hashstr) for hashstr in s.decode().split()]

	def serialize(self):
		return ' '.join(b2lx(blkhash) for blkhash in self.blocks).encode()

	def __repr__(self):
		return "HeightIdx(blocks=%s)" % (self.serialize().decode(),)


class ChainDb(object):
	"""Accepts blocks in order and indexes them

	Keys in the LevelDB database:
	   misc:*    state
	   blocks:*  location of a block in the flat files
	   blkmeta:* block metadata
	   height:*  list of blocks at height h

	Accepted blocks are appended to this database's own flat files.
	"""
	def __init__(self, datadir, params, log, check_pow=False):
		self.params = params
		self.log = log
		self.check_pow = check_pow

		os.makedirs(datadir, exist_ok=True)
		self.store = BlockStore(datadir, params)
		self.db = plyvel.DB(os.path.join(datadir, METADATA_DIR),
				    create_if_missing=True)

		start = self.db.get(b'misc:msg_start')
		if start is None:
			self.log.write("INITIALIZING EMPTY BLOCKCHAIN DATABASE")
			self._put_genesis()
		elif start != params.MESSAGE_START:
			self.db.close()
			raise ChainDbError("Database magic number mismatch. Data corruption or incorrect network?")

	def _put_genesis(self):
		block = self.params.GENESIS_BLOCK
		blkhash = block.GetHash()
		blkmeta = BlkMeta(0, compact_to_work(block.nBits))

		location = self.store.write_block(block.serialize())

		heightidx = HeightIdx()
		heightidx.blocks.append(blkhash)

		with self.db.write_batch(transaction=True) as batch:
			batch.put(b'misc:msg_start', self.params.MESSAGE_START)
			batch.put(b'blocks:' + blkhash, location.serialize())
			batch.put(b'blkmeta:' + blkhash, blkmeta.serialize())
			batch.put(b'height:0', heightidx.serialize())
			self._set_best(batch, blkhash, blkmeta)

	def _set_best(self, batch, blkhash, blkmeta):
		batch.put(b'misc:tophash', blkhash)
		batch.put(b'misc:height', str(blkmeta.height).encode())
		batch.put(b'misc:total_work', hex(blkmeta.work).encode())

	def accept(self, block, location=None):
		"""Validate block, store it and add it to the index

		location is where the block was read from, only used for logging.
		Returns the BlockLocation the block was written to.

		Raises a ValidationError if the block is rejected.
		"""
		blkhash = block.GetHash()

		if self.haveblock(blkhash):
			raise AcceptBlockError("Duplicate block %s submitted" % (b2lx(blkhash),))

		CheckBlock(block, fCheckPoW=self.check_pow,
			   pow_limit=self.params.PROOF_OF_WORK_LIMIT)

		prevmeta = self.getblockmeta(block.hashPrevBlock)
		if prevmeta is None:
			raise AcceptBlockError("Orphan block %s, previous block %s unknown" % (
				b2lx(blkhash), b2lx(block.hashPrevBlock)))

		blkmeta = BlkMeta(prevmeta.height + 1,
				  prevmeta.work + compact_to_work(block.nBits))

		# verify against checkpoint list
		chk_hash = self.params.CHECKPOINTS.get(blkmeta.height)
		if chk_hash is not None and chk_hash != blkhash:
			raise AcceptBlockError("Block %s does not match checkpoint hash %s, height %d" % (
				b2lx(blkhash), b2lx(chk_hash), blkmeta.height))

		new_location = self.store.write_block(block.serialize())

		heightidx = self.getheightidx(blkmeta.height)
		heightidx.blocks.append(blkhash)

		with self.db.write_batch(transaction=True) as batch:
			batch.put(b'blocks:' + blkhash, new_location.serialize())
			batch.put(b'blkmeta:' + blkhash, blkmeta.serialize())
			batch.put(b'height:' + str(blkmeta.height).encode(),
				  heightidx.serialize())

			# if chain is not best chain, proceed no further
			if blkmeta.work > self.gettotalwork():
				self._set_best(batch, blkhash, blkmeta)
				self.log.debug("ChainDb: height %d, block %s, from %r" % (
					blkmeta.height, b2lx(blkhash), location))
			else:
				self.log.debug("ChainDb: height %d (weak), block %s, from %r" % (
					blkmeta.height, b2lx(blkhash), location))

		return new_location

	def haveblock(self, blkhash):
		return self.db.get(b'blocks:' + blkhash) is not None

	def getblocklocation(self, blkhash):
		ser_location = self.db.get(b'blocks:' + blkhash)
		if ser_location is None:
			return None
		return BlockLocation.deserialize(ser_location)

	def getblock(self, blkhash):
		location = self.getblocklocation(blkhash)
		if location is None:
			return None
		return CBlock.deserialize(self.store.read_block(location, blkhash))

	def getblockmeta(self, blkhash):
		s = self.db.get(b'blkmeta:' + blkhash)
		if s is None:
			return None
		meta = BlkMeta()
		meta.deserialize(s)
		return meta

	def getblockheight(self, blkhash):
		meta = self.getblockmeta(blkhash)
		if meta is None:
			return -1
		return meta.height

	def getheightidx(self, height):
		heightidx = HeightIdx()
		s = self.db.get(b'height:' + str(height).encode())
		if s is not None:
			heightidx.deserialize(s)
		return heightidx

	def getheight(self):
		return int(self.db.get(b'misc:height'))

	def gettophash(self):
		return self.db.get(b'misc:tophash')

	def gettotalwork(self):
		return int(self.db.get(b'misc:total_work'), 16)

	def close(self):
		self.db.close()
