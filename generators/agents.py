import random
import string
import uuid
from datetime import datetime, timedelta

from .base import BaseGenerator
from .geofence import pick_zone, random_point_in_zone
from models import AgentLocation, DeliveryAgent, VehicleType
from db import get_cursor
from services.errors import ValidationError
from services.store import AgentStore


class AgentGenerator(BaseGenerator):
    VEHICLE_TYPES = [
        (VehicleType.BIKE, 0.55),
        (VehicleType.SCOOTER, 0.25),
        (VehicleType.BICYCLE, 0.15),
        (VehicleType.CAR, 0.05),
    ]

    STATE_CODES = {
        "Karnataka": "KA",
        "Maharashtra": "MH",
        "Delhi": "DL",
        "Telangana": "TS",
        "Rajasthan": "RJ",
    }

    def _weighted_choice(self, choices: list[tuple]):
        items, weights = zip(*choices)
        return random.choices(items, weights=weights)[0]

    def _generate_vehicle_number(self, state: str) -> str:
        letters = "".join(random.choices(string.ascii_uppercase, k=2))
        code = self.STATE_CODES.get(state, "XX")
        return f"{code}{random.randint(1, 99):02d}{letters}{random.randint(1000, 9999)}"

    def generate_one(self) -> DeliveryAgent:
        zone = pick_zone()
        # Agents roam, use up to 80% of zone radius
        lat, lon = random_point_in_zone(zone, spread=0.8)

        # Random signup date within last 2 years
        days_ago = random.randint(0, 730)
        created_at = datetime.now() - timedelta(days=days_ago)

        return DeliveryAgent(
            agent_id=str(uuid.uuid4()),
            first_name=self.fake.first_name(),
            last_name=self.fake.last_name(),
            email=self.fake.unique.email(),
            phone=self.fake.unique.phone_number(),
            vehicle_type=self._weighted_choice(self.VEHICLE_TYPES),
            vehicle_number=self._generate_vehicle_number(zone["state"]),
            delivery_zone=zone["city"],
            is_active=random.random() < 0.9,  # 90% active rate
            is_online=random.random() < 0.6,
            current_location=AgentLocation(latitude=lat, longitude=lon, last_updated=datetime.now()),
            created_at=created_at,
        )

    def save_to_db(self, records: list[DeliveryAgent]) -> list[DeliveryAgent]:
        saved = []
        with get_cursor() as cursor:
            store = AgentStore(cursor)
            for agent in records:
                try:
                    store.insert(agent)
                except ValidationError:
                    # Phone or email already on file from an earlier run
                    continue
                saved.append(agent)
        skipped = len(records) - len(saved)
        print(f"Saved {len(saved)} delivery agents" + (f", skipped {skipped} duplicates" if skipped else ""))
        return saved

    def get_active_ids(self) -> list[str]:
        with get_cursor() as cursor:
            cursor.execute("SELECT agent_id FROM delivery_agents WHERE is_active = 1")
            return [row[0] for row in cursor.fetchall()]
