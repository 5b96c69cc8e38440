#
# __init__.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

import ffldb.core
from ffldb.core import lx

# Note that setup.py can break if __init__.py imports any external
# dependencies, as these might not be installed when setup.py runs. In this
# case __version__ could be moved to a separate version.py and imported here.
__version__ = '0.1.0'

class MainParams(ffldb.core.CoreMainParams):
    MESSAGE_START = b'\xf9\xbe\xb4\xd9'
    CHECKPOINTS = {
             0: lx('000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f'),
         11111: lx('0000000069e244f73d78e8fd29ba2fd2ed618bd6fa2ee92559f542fdb26e7c1d'),
         33333: lx('000000002dd5588a74784eaa7ab0507a18ad16a236e7b1ce69f00d7ddfb5d0a6'),
         74000: lx('0000000000573993a3c9e41ce34471c079dcf5f52a0e824a81e7f953b8661a20'),
        105000: lx('00000000000291ce28027faea320c8d2b054b2e0fe44a773f3eefb151d6bdc97'),
        134444: lx('00000000000005b12ffd4cd315cd34ffd4a594f430ac814c91184a0d42d2b0fe'),
        168000: lx('000000000000099e61ea72015e79632f216fe6cb33d7899acb35b75c8303b763'),
        193000: lx('000000000000059f452a5f7340de6682a977387c17010ff6e6c3bd83ca8b1317'),
        210000: lx('000000000000048b95347e83192f69cf0366076336c639f9b7228e9ba171342e'),
        216116: lx('00000000000001b4f4b433e81ee46494af945cf96014816a4e2370f11b23df4e'),
    }

class TestNetParams(ffldb.core.CoreTestNetParams):
    MESSAGE_START = b'\x0b\x11\x09\x07'
    CHECKPOINTS = {
        0: lx('000000000933ea01ad0ee984209779baaec3ced90fa3f408719526f8d77f4943'),
    }

class RegTestParams(ffldb.core.CoreRegTestParams):
    MESSAGE_START = b'\xfa\xbf\xb5\xda'
    CHECKPOINTS = {}

NETWORKS = {
    'mainnet': MainParams,
    'testnet': TestNetParams,
    'regtest': RegTestParams,
}

def get_params(name):
    """Return the chain parameters for a network

    name is one of 'mainnet', 'testnet' or 'regtest'. The name is also the
    subdirectory the node keeps that network's database in.
    """
    try:
        return NETWORKS[name]()
    except KeyError:
        raise ValueError('Unknown chain %r' % name)
