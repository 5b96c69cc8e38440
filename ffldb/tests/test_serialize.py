# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.

import unittest

from binascii import unhexlify

from ffldb.core.serialize import *

class Test_Serializable(unittest.TestCase):
    def test_extra_data(self):
        """Serializable.deserialize() fails if extra data is present"""

        class FooSerializable(Serializable):
            @classmethod
            def stream_deserialize(cls, f):
                return cls()

            def stream_serialize(self, f):
                pass

        try:
            FooSerializable.deserialize(b'\x00')
        except DeserializationExtraDataError as err:
            self.assertEqual(err.obj, FooSerializable())
            self.assertEqual(err.padding, b'\x00')

        else:
            self.fail("DeserializationExtraDataError not raised")

        FooSerializable.deserialize(b'\x00', allow_padding=True)

    def test_truncation_is_serialization_error(self):
        self.assertTrue(issubclass(SerializationTruncationError, SerializationError))
        self.assertTrue(issubclass(DeserializationExtraDataError, SerializationError))

class Test_ImmutableSerializable(unittest.TestCase):
    def test_immutable(self):
        class Foo(ImmutableSerializable):
            __slots__ = ['n']

            def __init__(self, n):
                object.__setattr__(self, 'n', n)

            def stream_serialize(self, f):
                f.write(bytes([self.n]))

        foo = Foo(1)
        with self.assertRaises(AttributeError):
            foo.n = 2
        with self.assertRaises(AttributeError):
            del foo.n
        self.assertEqual(foo.GetHash(), Hash(b'\x01'))
        self.assertEqual(hash(foo), hash(Foo(1)))

class Test_VarIntSerializer(unittest.TestCase):
    def test(self):
        def T(value, expected):
            expected = unhexlify(expected)
            actual = VarIntSerializer.serialize(value)
            self.assertEqual(actual, expected)
            roundtrip = VarIntSerializer.deserialize(actual)
            self.assertEqual(value, roundtrip)
        T(0x0, b'00')
        T(0xfc, b'fc')
        T(0xfd, b'fdfd00')
        T(0xffff, b'fdffff')
        T(0x10000, b'fe00000100')
        T(0xffffffff, b'feffffffff')
        T(0x100000000, b'ff0000000001000000')
        T(0xffffffffffffffff, b'ffffffffffffffffff')

    def test_truncated(self):
        def T(serialized):
            serialized = unhexlify(serialized)
            with self.assertRaises(SerializationTruncationError):
                VarIntSerializer.deserialize(serialized)
        T(b'')
        T(b'fd')
        T(b'fd00')
        T(b'fe000000')
        T(b'ff00000000000000')

class Test_BytesSerializer(unittest.TestCase):
    def test_truncated(self):
        def T(serialized, ex_cls=SerializationTruncationError):
            serialized = unhexlify(serialized)
            with self.assertRaises(ex_cls):
                BytesSerializer.deserialize(serialized)
        T(b'')
        T(b'01')
        T(b'0200')
        T(b'ff00000000000000ff11223344', SerializationError) # > max_size

class Test_compact(unittest.TestCase):
    def test_uint256_from_compact(self):
        self.assertEqual(uint256_from_compact(0x1d00ffff), 0xffff << 208)
        self.assertEqual(uint256_from_compact(0x207fffff), 0x7fffff << 232)
        self.assertEqual(uint256_from_compact(0x03123456), 0x123456)
        self.assertEqual(uint256_from_compact(0x02123456), 0x1234)

    def test_compact_to_work(self):
        # Genesis block work on mainnet
        self.assertEqual(compact_to_work(0x1d00ffff), 0x100010001)
        self.assertEqual(compact_to_work(0x207fffff), 2)
        self.assertEqual(compact_to_work(0), 0)
        self.assertEqual(compact_to_work(0x04923456), 0) # negative
