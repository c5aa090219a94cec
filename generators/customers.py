import random
import uuid

from .base import BaseGenerator
from .geofence import pick_zone, random_point_in_zone
from models import Address, AddressType, Coordinates, CustomerSnapshot


class CustomerGenerator(BaseGenerator):
    LANDMARKS = [
        None, None, None,
        "Near metro station",
        "Opposite city park",
        "Behind the post office",
        "Next to the temple",
        "Above the pharmacy",
    ]

    ADDRESS_TYPES = [
        (AddressType.HOME, 0.70),
        (AddressType.OFFICE, 0.22),
        (AddressType.OTHER, 0.08),
    ]

    def generate_one(self) -> CustomerSnapshot:
        zone = pick_zone()
        # Customers are spread over the whole zone
        lat, lon = random_point_in_zone(zone)

        items, weights = zip(*self.ADDRESS_TYPES)
        return CustomerSnapshot(
            user_id=str(uuid.uuid4()),
            name=self.fake.name(),
            phone=self.fake.phone_number(),
            email=self.fake.email(),
            address=Address(
                street=self.fake.street_address(),
                landmark=random.choice(self.LANDMARKS),
                city=zone["city"],
                state=zone["state"],
                zip_code=self.fake.postcode(),
                coordinates=Coordinates(latitude=lat, longitude=lon),
                address_type=random.choices(items, weights=weights)[0],
            ),
        )
