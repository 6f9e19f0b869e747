"""optionpool.ledger — Reserve book, collateral ledger, and audit types."""

from optionpool.ledger.collateral import CollateralLedger as CollateralLedger
from optionpool.ledger.collateral import LedgerCheckpoint as LedgerCheckpoint
from optionpool.ledger.engine import DEFAULT_POOL_ACCOUNT as DEFAULT_POOL_ACCOUNT
from optionpool.ledger.engine import ReserveBook as ReserveBook
from optionpool.ledger.transactions import EntryKind as EntryKind
from optionpool.ledger.transactions import LedgerEntry as LedgerEntry
from optionpool.ledger.transactions import Transfer as Transfer
