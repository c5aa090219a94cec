import random
import uuid

from .base import BaseGenerator
from .customers import CustomerGenerator
from .geofence import get_zone_for_coordinates, haversine_distance, pick_zone, random_point_in_zone
from .merchants import MerchantGenerator
from models import (
    Address,
    Coordinates,
    DeliveryInfo,
    Order,
    OrderDraft,
    OrderItem,
    PaymentMethod,
    Pricing,
    Priority,
    SpecialRequest,
)
from services import DispatchService


# (name, category, price, discounted price)
PRODUCT_CATALOG = [
    ("Toned Milk 1L", "dairy", 56.0, None),
    ("Paneer 200g", "dairy", 90.0, 82.0),
    ("Curd 400g", "dairy", 45.0, None),
    ("Butter 100g", "dairy", 58.0, None),
    ("Whole Wheat Bread", "bakery", 45.0, 40.0),
    ("Pav 6pc", "bakery", 30.0, None),
    ("Brown Eggs 6pc", "eggs", 72.0, 65.0),
    ("Basmati Rice 1kg", "staples", 165.0, 149.0),
    ("Toor Dal 1kg", "staples", 180.0, None),
    ("Atta 5kg", "staples", 265.0, 239.0),
    ("Sunflower Oil 1L", "staples", 155.0, None),
    ("Onion 1kg", "vegetables", 40.0, None),
    ("Tomato 1kg", "vegetables", 35.0, 30.0),
    ("Potato 1kg", "vegetables", 32.0, None),
    ("Coriander Bunch", "vegetables", 15.0, None),
    ("Banana 6pc", "fruits", 48.0, None),
    ("Apple 4pc", "fruits", 160.0, 140.0),
    ("Masala Chips", "snacks", 20.0, None),
    ("Instant Noodles 4pk", "snacks", 56.0, 50.0),
    ("Masala Tea 250g", "beverages", 140.0, None),
    ("Cold Coffee 200ml", "beverages", 40.0, None),
    ("Dishwash Gel 500ml", "household", 110.0, 99.0),
]


class OrderGenerator(BaseGenerator):
    """Generates order drafts between a customer and a merchant in the same city."""

    DELIVERY_NOTES = [
        None, None, None, None,
        "Leave at door",
        "Ring doorbell",
        "Call when arriving",
        "Gate code: {code}",
        "Leave with security guard",
        "Flat {apt}, lift is on the left",
    ]

    SPECIAL_REQUESTS = [
        ("contactless", "Contactless delivery"),
        ("leave_at_door", "Leave the bag at the door"),
        ("no_bell", "Do not ring the bell"),
        ("extra_bags", "Pack fruits separately"),
    ]

    PRIORITIES = [
        (Priority.NORMAL, 0.80),
        (Priority.HIGH, 0.15),
        (Priority.URGENT, 0.05),
    ]

    PAYMENT_METHODS = [
        (PaymentMethod.UPI, 0.45),
        (PaymentMethod.CARD, 0.20),
        (PaymentMethod.CASH, 0.25),
        (PaymentMethod.WALLET, 0.10),
    ]

    TAX_RATE = 0.05
    BASE_DELIVERY_FEE = 40.0
    FREE_DELIVERY_THRESHOLD = 499.0
    PLATFORM_FEE = 5.0
    MERCHANTS_PER_CITY = 4

    def __init__(self, seed: int | None = 42):
        super().__init__(seed)
        self.customer_gen = CustomerGenerator(seed=None)
        self.merchant_gen = MerchantGenerator(seed=None)
        self._merchants_by_city = {}

    def _weighted_choice(self, choices: list[tuple]):
        items, weights = zip(*choices)
        return random.choices(items, weights=weights)[0]

    def _merchants_for_zone(self, zone: dict) -> list:
        city = zone["city"]
        if city not in self._merchants_by_city:
            self._merchants_by_city[city] = [
                self.merchant_gen.generate_one(zone) for _ in range(self.MERCHANTS_PER_CITY)
            ]
        return self._merchants_by_city[city]

    def _select_merchant(self, destination: Coordinates):
        """Pick a merchant in the customer's city, weighted by proximity."""
        zone = get_zone_for_coordinates(destination.latitude, destination.longitude) or pick_zone()
        merchants = self._merchants_for_zone(zone)

        distances = []
        for merchant in merchants:
            pickup = merchant.address.coordinates
            dist = haversine_distance(destination.latitude, destination.longitude,
                                      pickup.latitude, pickup.longitude)
            distances.append(max(0.1, dist))

        weights = [1.0 / (d ** 2) for d in distances]  # Square inverse for stronger proximity preference
        index = random.choices(range(len(merchants)), weights=weights)[0]
        return merchants[index], distances[index]

    def _generate_delivery_note(self) -> str | None:
        note = random.choice(self.DELIVERY_NOTES)
        if note and "{code}" in note:
            note = note.format(code=random.randint(1000, 9999))
        if note and "{apt}" in note:
            note = note.format(apt=random.randint(1, 500))
        return note

    def _generate_items(self) -> list[OrderItem]:
        num_items = random.choices(range(1, 9), weights=[10, 18, 20, 18, 14, 10, 6, 4])[0]
        items = []
        for name, category, price, discounted in random.sample(PRODUCT_CATALOG, num_items):
            items.append(OrderItem(
                product_id=str(uuid.uuid5(uuid.NAMESPACE_DNS, name)),
                name=name,
                quantity=random.choices([1, 2, 3, 4], weights=[60, 25, 10, 5])[0],
                price=price,
                discounted_price=discounted,
                category=category,
            ))
        return items

    def _calculate_tip(self) -> float:
        return float(random.choices([0, 10, 20, 30, 50], weights=[45, 20, 20, 10, 5])[0])

    def _build_pricing(self, items: list[OrderItem]) -> Pricing:
        items_total = round(sum(i.price * i.quantity for i in items), 2)
        discount = round(sum((i.price - i.discounted_price) * i.quantity
                             for i in items if i.discounted_price is not None), 2)
        delivery_fee = 0.0 if items_total >= self.FREE_DELIVERY_THRESHOLD else self.BASE_DELIVERY_FEE
        taxes = round((items_total - discount) * self.TAX_RATE, 2)
        tip = self._calculate_tip()
        total = round(items_total - discount + delivery_fee + self.PLATFORM_FEE + tip + taxes, 2)
        return Pricing(
            items_total=items_total,
            discount=discount,
            delivery_fee=delivery_fee,
            platform_fee=self.PLATFORM_FEE,
            tip=tip,
            taxes=taxes,
            total_amount=total,
        )

    def generate_one(self) -> OrderDraft:
        customer = self.customer_gen.generate_one()
        merchant, distance = self._select_merchant(customer.address.coordinates)

        # Some orders come from just outside the city, bring them back in
        if distance > 10:
            zone = get_zone_for_coordinates(*self._coords(merchant)) or pick_zone()
            lat, lon = random_point_in_zone(zone, spread=0.5)
            customer = customer.model_copy(update={"address": Address(
                **customer.address.model_dump(exclude={"coordinates"}),
                coordinates=Coordinates(latitude=lat, longitude=lon),
            )})
            distance = haversine_distance(lat, lon, *self._coords(merchant))

        special_requests = []
        if random.random() < 0.2:
            kind, description = random.choice(self.SPECIAL_REQUESTS)
            special_requests.append(SpecialRequest(type=kind, description=description))

        items = self._generate_items()
        return OrderDraft(
            customer=customer,
            restaurant=merchant,
            items=items,
            pricing=self._build_pricing(items),
            delivery_info=DeliveryInfo(
                # ~4 min per km plus prep time
                estimated_time=int(15 + distance * 4),
                distance=round(distance, 2),
                delivery_instructions=self._generate_delivery_note(),
                priority=self._weighted_choice(self.PRIORITIES),
            ),
            payment_method=self._weighted_choice(self.PAYMENT_METHODS),
            special_requests=special_requests,
        )

    @staticmethod
    def _coords(merchant) -> tuple[float, float]:
        pickup = merchant.address.coordinates
        return pickup.latitude, pickup.longitude

    def save_to_db(self, records: list[OrderDraft]) -> list[Order]:
        dispatch = DispatchService()
        orders = [dispatch.create_order(draft) for draft in records]
        print(f"Saved {len(orders)} orders")
        return orders
