"""
AMM pool configuration state.
Holds the pool identity (asset pair, seed, fee, authority) and the live
reserve / LP supply counters.
"""
from decimal import Decimal
from typing import Optional

from Crypto.Hash import keccak

from cpamm.errors import InvalidAssetPair, InvalidFee, InvariantViolation
from cpamm.fixed_point import U16_MAX, require_u64

# 10000 basis points = 100%
FEE_DENOMINATOR = 10_000
ADDRESS_LENGTH = 20


def generate_hash(data: bytes) -> bytes:
    """Generates a Keccak-256 hash."""
    return keccak.new(digest_bits=256, data=data).digest()


def derive_pool_address(seed: int, asset_x: bytes, asset_y: bytes) -> bytes:
    """
    Derive the pool address from its identity.

    Identity is (seed, asset_x, asset_y); the seed is encoded as 8 bytes
    little-endian.
    """
    require_u64(seed, "seed")
    preimage = b"config" + seed.to_bytes(8, "little") + asset_x + asset_y
    return generate_hash(preimage)[:ADDRESS_LENGTH]


def derive_lp_mint(pool_address: bytes) -> bytes:
    """Derive the LP token identifier owned by a pool."""
    return generate_hash(b"lp" + pool_address)[:ADDRESS_LENGTH]


def validate_fee(fee: int) -> int:
    if isinstance(fee, bool) or not isinstance(fee, int):
        raise InvalidFee(f"Fee must be an integer, got {fee!r}")
    if fee < 0 or fee > U16_MAX or fee > FEE_DENOMINATOR:
        raise InvalidFee(f"Fee {fee} outside [0, {FEE_DENOMINATOR}] basis points")
    return fee


def validate_address(value: bytes, name: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_LENGTH:
        raise InvalidAssetPair(f"{name} must be a {ADDRESS_LENGTH}-byte address")
    return bytes(value)


class PoolConfig:
    """
    Represents one constant product pool (reserve_x * reserve_y = k).

    The identity fields (seed, asset_x, asset_y) never change after creation.
    Reserves and lp_supply are u64 counters mutated only through the
    operations module, which always returns a new PoolConfig.
    """

    def __init__(self, data: dict):
        """
        Initialize pool state.

        Args:
            data: Dict with identity fields and optionally reserves, LP supply
                  and the lock flag
        """
        self.seed = require_u64(int(data['seed']), "seed")
        self.asset_x = validate_address(data['asset_x'], "asset_x")
        self.asset_y = validate_address(data['asset_y'], "asset_y")
        if self.asset_x == self.asset_y:
            raise InvalidAssetPair("asset_x and asset_y must differ")

        self.fee = validate_fee(data['fee'])
        authority = data.get('authority')
        self.authority: Optional[bytes] = (
            validate_address(authority, "authority") if authority is not None else None
        )

        self.lp_supply = require_u64(int(data.get('lp_supply', 0)), "lp_supply")
        self.reserve_x = require_u64(int(data.get('reserve_x', 0)), "reserve_x")
        self.reserve_y = require_u64(int(data.get('reserve_y', 0)), "reserve_y")
        self.locked = bool(data.get('locked', False))

    @classmethod
    def from_dict(cls, data: dict) -> 'PoolConfig':
        return cls(data)

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'seed': self.seed,
            'asset_x': self.asset_x,
            'asset_y': self.asset_y,
            'fee': self.fee,
            'authority': self.authority,
            'lp_supply': self.lp_supply,
            'reserve_x': self.reserve_x,
            'reserve_y': self.reserve_y,
            'locked': self.locked,
        }

    def copy(self, **changes) -> 'PoolConfig':
        """Return a new PoolConfig with the given fields replaced."""
        data = self.to_dict()
        data.update(changes)
        return PoolConfig(data)

    @property
    def address(self) -> bytes:
        return derive_pool_address(self.seed, self.asset_x, self.asset_y)

    @property
    def lp_mint(self) -> bytes:
        return derive_lp_mint(self.address)

    @property
    def is_empty(self) -> bool:
        return self.lp_supply == 0

    @property
    def k(self) -> int:
        """Constant product of the reserves."""
        return self.reserve_x * self.reserve_y

    @property
    def current_price(self) -> Decimal:
        """
        Price of one unit of X expressed in Y.

        Price = reserve_y / reserve_x

        Returns:
            Decimal('0') for an empty pool
        """
        if self.reserve_x == 0:
            return Decimal('0')
        return Decimal(self.reserve_y) / Decimal(self.reserve_x)

    def reserves_for(self, is_x: bool) -> tuple[int, int]:
        """(reserve_in, reserve_out) for a swap whose input is X when is_x."""
        if is_x:
            return self.reserve_x, self.reserve_y
        return self.reserve_y, self.reserve_x

    def check_invariants(self):
        """
        Raise InvariantViolation unless the reserves agree with the LP supply.

        Empty pool <=> no LP tokens, and a pool with LP tokens holds both
        assets.
        """
        if self.lp_supply == 0:
            if self.reserve_x != 0 or self.reserve_y != 0:
                raise InvariantViolation(
                    f"Pool has no LP supply but reserves "
                    f"({self.reserve_x}, {self.reserve_y})"
                )
        elif self.reserve_x == 0 or self.reserve_y == 0:
            raise InvariantViolation(
                f"Pool has LP supply {self.lp_supply} but reserves "
                f"({self.reserve_x}, {self.reserve_y})"
            )
        if self.fee > FEE_DENOMINATOR:
            raise InvariantViolation(f"Fee {self.fee} above {FEE_DENOMINATOR}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, PoolConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"PoolConfig("
            f"address={self.address.hex()[:8]}, "
            f"fee={self.fee}, "
            f"reserve_x={self.reserve_x}, "
            f"reserve_y={self.reserve_y}, "
            f"lp_supply={self.lp_supply}, "
            f"locked={self.locked})"
        )
