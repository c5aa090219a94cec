import random
import uuid

from .base import BaseGenerator
from .geofence import pick_zone, random_point_in_zone
from models import Coordinates, MerchantAddress, RestaurantSnapshot


class MerchantGenerator(BaseGenerator):
    # Merchant name patterns
    NAME_PREFIXES = [
        "Fresh", "Green", "Quick", "Daily", "Local", "Urban",
        "Metro", "City", "Corner", "Village", "Prime", "Express",
    ]

    NAME_SUFFIXES = [
        "Mart", "Grocers", "Kitchen", "Bazaar", "Basket", "Store",
        "Pantry", "Dhaba", "Foods", "Provisions",
    ]

    def __init__(self, seed: int | None = 42):
        super().__init__(seed)
        self._used_names = set()

    def _generate_unique_name(self) -> str:
        """Generate a unique merchant name."""
        for _ in range(100):  # Max attempts
            name = f"{random.choice(self.NAME_PREFIXES)} {random.choice(self.NAME_SUFFIXES)}"
            if name not in self._used_names:
                self._used_names.add(name)
                return name
        # Fallback with number
        return f"{random.choice(self.NAME_PREFIXES)} {random.choice(self.NAME_SUFFIXES)} #{random.randint(1, 999)}"

    def generate_one(self, zone: dict | None = None) -> RestaurantSnapshot:
        zone = zone or pick_zone()
        # Merchants sit closer to the centre (within 60% of zone radius)
        lat, lon = random_point_in_zone(zone, spread=0.6)

        return RestaurantSnapshot(
            merchant_id=str(uuid.uuid4()),
            name=self._generate_unique_name(),
            phone=self.fake.phone_number(),
            address=MerchantAddress(
                street=self.fake.street_address(),
                city=zone["city"],
                state=zone["state"],
                zip_code=self.fake.postcode(),
                coordinates=Coordinates(latitude=lat, longitude=lon),
            ),
        )
