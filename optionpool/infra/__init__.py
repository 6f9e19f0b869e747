"""optionpool.infra — Collaborator protocols, adapters, and call guards.

Asset presets live in optionpool.infra.config and are imported from there
directly; they depend on the pricing and strategy packages.
"""

from optionpool.infra.memory_adapter import InMemoryPriceOracle as InMemoryPriceOracle
from optionpool.infra.operator import OperatorGuard as OperatorGuard
from optionpool.infra.protocols import PriceOracle as PriceOracle
from optionpool.infra.protocols import PriceReading as PriceReading
from optionpool.infra.protocols import ReserveAccounting as ReserveAccounting
from optionpool.infra.reentrancy import ReentrancyGuard as ReentrancyGuard
