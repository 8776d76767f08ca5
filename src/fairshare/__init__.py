"""FairShare - Multi-currency shared expense balances and settlements."""

__version__ = "0.1.0"

from .balances import compute_balances
from .config import Settings, load_settings
from .exceptions import FairShareError, ValidationError, ValidationErrorCode
from .exchange import ExchangeRate, ExchangeRateCache, apply_exchange_rate
from .ledger import build_expense, build_transfer, settlement_to_transfer
from .models import (
    Expense,
    ExpenseShare,
    Ledger,
    Member,
    PaymentType,
    Settlement,
    SimplificationStep,
    SplitType,
)
from .money import (
    SCALE,
    ScaledPercentage,
    divide_scaled,
    format_currency,
    format_number,
    from_scaled,
    multiply_scaled,
    sum_scaled,
    to_scaled,
)
from .service import SettlementService
from .settlement import (
    compute_settlements_no_simplify,
    compute_settlements_simplified,
    compute_simplification_steps,
)
from .splits import (
    EqualSplit,
    ExactSplit,
    PercentageSplit,
    calculate_equal_split,
    calculate_percentage_split,
    normalize_exact_split,
    split_amount,
)

__all__ = [
    "Settings",
    "load_settings",
    "FairShareError",
    "ValidationError",
    "ValidationErrorCode",
    "SCALE",
    "ScaledPercentage",
    "to_scaled",
    "from_scaled",
    "format_number",
    "format_currency",
    "multiply_scaled",
    "divide_scaled",
    "sum_scaled",
    "EqualSplit",
    "PercentageSplit",
    "ExactSplit",
    "calculate_equal_split",
    "calculate_percentage_split",
    "normalize_exact_split",
    "split_amount",
    "ExchangeRate",
    "ExchangeRateCache",
    "apply_exchange_rate",
    "Member",
    "Expense",
    "ExpenseShare",
    "Ledger",
    "PaymentType",
    "SplitType",
    "Settlement",
    "SimplificationStep",
    "build_expense",
    "build_transfer",
    "settlement_to_transfer",
    "compute_balances",
    "compute_settlements_no_simplify",
    "compute_settlements_simplified",
    "compute_simplification_steps",
    "SettlementService",
]
