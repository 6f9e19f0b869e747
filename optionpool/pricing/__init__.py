"""optionpool.pricing — Premium calculators, parameters, and protocols."""

from optionpool.pricing._validation import check_request as check_request
from optionpool.pricing.adaptive import AdaptivePriceCalculator as AdaptivePriceCalculator
from optionpool.pricing.adaptive import effective_iv_rate as effective_iv_rate
from optionpool.pricing.fixed_iv import FixedIVPriceCalculator as FixedIVPriceCalculator
from optionpool.pricing.otm import OtmPriceCalculator as OtmPriceCalculator
from optionpool.pricing.otm import round_strike as round_strike
from optionpool.pricing.protocols import PriceCalculator as PriceCalculator
from optionpool.pricing.protocols import UtilizationSource as UtilizationSource
from optionpool.pricing.types import IV_RATE_PRECISION as IV_RATE_PRECISION
from optionpool.pricing.types import UTILIZATION_RATE_PRECISION as UTILIZATION_RATE_PRECISION
from optionpool.pricing.types import AdaptiveParams as AdaptiveParams
from optionpool.pricing.types import FixedIVParams as FixedIVParams
from optionpool.pricing.types import OtmParams as OtmParams
from optionpool.pricing.types import PeriodBounds as PeriodBounds
from optionpool.pricing.types import Quote as Quote
from optionpool.pricing.types import TermStructure as TermStructure
from optionpool.pricing.types import UtilizationParams as UtilizationParams
