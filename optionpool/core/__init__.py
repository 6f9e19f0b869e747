"""optionpool.core — public API for all core types."""

from optionpool.core.errors import (
    ArithmeticOverflowError as ArithmeticOverflowError,
)
from optionpool.core.errors import (
    AuthorizationError as AuthorizationError,
)
from optionpool.core.errors import (
    CapacityError as CapacityError,
)
from optionpool.core.errors import (
    FieldViolation as FieldViolation,
)
from optionpool.core.errors import (
    InvariantViolationError as InvariantViolationError,
)
from optionpool.core.errors import (
    MissingObservableError as MissingObservableError,
)
from optionpool.core.errors import (
    OptionPoolError as OptionPoolError,
)
from optionpool.core.errors import (
    PositionStateError as PositionStateError,
)
from optionpool.core.errors import (
    TransferError as TransferError,
)
from optionpool.core.errors import (
    ValidationError as ValidationError,
)
from optionpool.core.money import (
    OPTIONPOOL_DECIMAL_CONTEXT as OPTIONPOOL_DECIMAL_CONTEXT,
)
from optionpool.core.money import (
    NonEmptyStr as NonEmptyStr,
)
from optionpool.core.money import (
    NonNegativeDecimal as NonNegativeDecimal,
)
from optionpool.core.money import (
    PositiveDecimal as PositiveDecimal,
)
from optionpool.core.result import (
    Err as Err,
)
from optionpool.core.result import (
    Ok as Ok,
)
from optionpool.core.result import (
    Rejected as Rejected,
)
from optionpool.core.result import (
    Result as Result,
)
from optionpool.core.result import (
    collect as collect,
)
from optionpool.core.result import (
    unwrap as unwrap,
)
from optionpool.core.types import (
    UtcDatetime as UtcDatetime,
)
