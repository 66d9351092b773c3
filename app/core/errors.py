"""Pricing failures surfaced to API callers"""


class PricingError(Exception):
    """Base class for failures that abort a pricing request."""


class MissingGlobalModifierSetError(PricingError):
    def __init__(self):
        super().__init__("Global modifier set is not configured")


class RateLookupError(PricingError):
    """The carrier price prediction could not be obtained."""


class NoRateAvailableError(PricingError):
    def __init__(self, miles, portal_id=None):
        self.miles = miles
        self.portal_id = portal_id
        super().__init__(f"No rate configured for {miles} miles (portal {portal_id})")
