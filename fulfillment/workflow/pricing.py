"""Order pricing."""

from decimal import ROUND_HALF_UP, Decimal

from fulfillment.config import Settings
from fulfillment.models.order import PriceBreakdown

FLAT_LOCAL_FEE = Decimal("5.00")
PER_KM_RATE = Decimal("0.59")
BULK_DISCOUNT_RATE = Decimal("0.10")
BULK_DISCOUNT_MARGIN = 5

CENTS = Decimal("0.01")


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.59 from turning into 0.58999...
    return Decimal(str(value))


class PricingEngine:
    """
    Computes the price breakdown of a catering order.

    The calculation is pure: the distance and locality come from the caller
    (normally the geocoding collaborator), nothing is looked up here.
    Intermediate amounts keep full precision; only the total is rounded.
    """

    def __init__(
        self,
        flat_local_fee: Decimal = FLAT_LOCAL_FEE,
        per_km_rate: Decimal = PER_KM_RATE,
        bulk_discount_rate: Decimal = BULK_DISCOUNT_RATE,
        bulk_discount_margin: int = BULK_DISCOUNT_MARGIN,
    ):
        self.flat_local_fee = _to_decimal(flat_local_fee)
        self.per_km_rate = _to_decimal(per_km_rate)
        self.bulk_discount_rate = _to_decimal(bulk_discount_rate)
        self.bulk_discount_margin = bulk_discount_margin

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingEngine":
        return cls(
            flat_local_fee=settings.flat_local_fee,
            per_km_rate=settings.per_km_rate,
            bulk_discount_rate=settings.bulk_discount_rate,
            bulk_discount_margin=settings.bulk_discount_margin,
        )

    def qualifies_for_discount(self, headcount: int, min_persons: int) -> bool:
        """Check the single bulk discount tier."""
        return headcount >= min_persons + self.bulk_discount_margin

    def delivery_fee(self, distance_km: Decimal | float, is_local: bool) -> Decimal:
        """Flat fee in town, flat fee plus a per-kilometre rate elsewhere."""
        if is_local:
            return self.flat_local_fee
        return self.flat_local_fee + self.per_km_rate * _to_decimal(distance_km)

    def price(
        self,
        price_per_person: Decimal | float,
        headcount: int,
        min_persons: int,
        distance_km: Decimal | float,
        is_local: bool,
    ) -> PriceBreakdown:
        """
        Price an order.

        Args:
            price_per_person: Menu price for one guest
            headcount: Number of guests
            min_persons: Menu minimum headcount
            distance_km: Delivery distance from the kitchen
            is_local: Whether the address is inside the flat-fee city

        Returns:
            PriceBreakdown with the total rounded half-up to cents
        """
        if headcount < 0:
            raise ValueError("headcount must be non-negative")
        distance = _to_decimal(distance_km)
        if distance < 0:
            raise ValueError("distance_km must be non-negative")

        subtotal = _to_decimal(price_per_person) * headcount
        if self.qualifies_for_discount(headcount, min_persons):
            discount = subtotal * self.bulk_discount_rate
        else:
            discount = Decimal("0")
        fee = self.delivery_fee(distance, is_local)

        total = (subtotal - discount + fee).quantize(CENTS, rounding=ROUND_HALF_UP)

        return PriceBreakdown(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=fee,
            total=total,
            distance_km=Decimal("0") if is_local else distance,
            is_local=is_local,
        )
