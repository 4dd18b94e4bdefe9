"""
Bitcoin transaction size and policy constants used for fee projection.

Sizes follow BIP141 weight accounting: non-witness bytes weigh 4 weight
units (WU), witness bytes weigh 1 WU, and a virtual byte is 4 WU.
"""

from __future__ import annotations

WITNESS_SCALE_FACTOR = 4

# Standard P2PKH dust limit in Bitcoin Core
STANDARD_DUST_LIMIT = 546  # satoshis

# version (4) + locktime (4)
TX_VERSION_LOCKTIME_SIZE = 8
# segwit marker + flag, both witness data
SEGWIT_MARKER_FLAG_WEIGHT = 2

# outpoint (36) + scriptSig length (1) + sequence (4)
BASE_INPUT_SIZE = 41

# item count (1) + sig length (1) + sig (73) + pubkey length (1) + pubkey (33)
P2WPKH_WITNESS_WEIGHT = 109
# item count (1) + sig length (1) + schnorr sig (64)
P2TR_KEYSPEND_WITNESS_WEIGHT = 66
# push (1) + OP_0 <20-byte-hash> redeem script (22)
NP2WPKH_SCRIPTSIG_SIZE = 23
# sig length (1) + sig (73) + pubkey length (1) + pubkey (33)
P2PKH_SCRIPTSIG_SIZE = 108

# value (8) + scriptPubKey length (1)
BASE_OUTPUT_SIZE = 9
P2WPKH_SCRIPTPUBKEY_SIZE = 22
P2WSH_SCRIPTPUBKEY_SIZE = 34
P2TR_SCRIPTPUBKEY_SIZE = 34
P2SH_SCRIPTPUBKEY_SIZE = 23
P2PKH_SCRIPTPUBKEY_SIZE = 25

# Inputs assumed when seeding the first fee estimate of a tier
SEED_INPUT_COUNT = 2

DEFAULT_MAX_CONVERGENCE_ROUNDS = 10

SATS_PER_BTC = 100_000_000

# Tier labels in the order returned by mempool.space /v1/fees/recommended
FASTEST_FEE = "fastest_fee"
HALF_HOUR_FEE = "half_hour_fee"
HOUR_FEE = "hour_fee"
ECONOMY_FEE = "economy_fee"
MINIMUM_FEE = "minimum_fee"

DEFAULT_TIER_LABELS = (FASTEST_FEE, HALF_HOUR_FEE, HOUR_FEE, ECONOMY_FEE, MINIMUM_FEE)
