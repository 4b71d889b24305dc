"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest

from clamm.core.defi.custody import InMemoryCustody
from clamm.core.defi.concentrated_liquidity import ConcentratedLiquidityPool
from clamm.core.defi.tick_math import get_sqrt_ratio_at_tick

# sqrt(5000) * 2**96, the ETH/USDC price used throughout the pool tests
SQRT_PRICE_5000 = 5602277097478614198912276234240

FUNDING = 10**30


class Payer:
    """
    PoolCallbacks implementation that pays the pool from its own custody
    account.

    underpay shortens every payment, repay_flash controls whether borrowed
    amounts are returned, and calls records every hook invocation.
    """

    def __init__(self, custody, pool, address="payer", underpay=0, repay_flash=True):
        self.custody = custody
        self.pool = pool
        self.address = address
        self.underpay = underpay
        self.repay_flash = repay_flash
        self.flash_amounts = (0, 0)
        self.calls = []

    def fund(self, amount=FUNDING):
        self.custody.set_balance(self.address, self.pool.token0, amount)
        self.custody.set_balance(self.address, self.pool.token1, amount)
        return self

    def _pay(self, token, amount):
        amount = max(amount - self.underpay, 0)
        if amount:
            self.custody.transfer(token, self.address, self.pool.address, amount)

    def on_mint(self, amount0, amount1, data):
        self.calls.append(("mint", amount0, amount1, data))
        if amount0 > 0:
            self._pay(self.pool.token0, amount0)
        if amount1 > 0:
            self._pay(self.pool.token1, amount1)

    def on_swap(self, amount0_delta, amount1_delta, data):
        self.calls.append(("swap", amount0_delta, amount1_delta, data))
        if amount0_delta > 0:
            self._pay(self.pool.token0, amount0_delta)
        if amount1_delta > 0:
            self._pay(self.pool.token1, amount1_delta)

    def on_flash(self, data):
        self.calls.append(("flash", data))
        if not self.repay_flash:
            return
        amount0, amount1 = self.flash_amounts
        if amount0:
            self.custody.transfer(self.pool.token0, self.address, self.pool.address, amount0)
        if amount1:
            self.custody.transfer(self.pool.token1, self.address, self.pool.address, amount1)


@pytest.fixture
def custody():
    return InMemoryCustody()


@pytest.fixture
def pool(custody):
    """ETH/USDC pool initialized at price 5000 (tick 85176)."""
    pool = ConcentratedLiquidityPool(token0="ETH", token1="USDC", custody=custody, address="0xpool")
    pool.initialize(SQRT_PRICE_5000)
    return pool


@pytest.fixture
def unit_pool(custody):
    """Pool initialized at price 1 (tick 0) with spacing 10."""
    pool = ConcentratedLiquidityPool(
        token0="AAA", token1="BBB", tick_spacing=10, custody=custody, address="0xunit"
    )
    pool.initialize(get_sqrt_ratio_at_tick(0))
    return pool


@pytest.fixture
def payer(custody, pool):
    return Payer(custody, pool).fund()


@pytest.fixture
def unit_payer(custody, unit_pool):
    return Payer(custody, unit_pool).fund()


@pytest.fixture
def make_payer(custody):
    """Build an extra funded Payer for a pool, e.g. a second LP or a trader."""
    def _make(pool, address="trader", **kwargs):
        return Payer(custody, pool, address=address, **kwargs).fund()
    return _make
