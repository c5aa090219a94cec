"""
Geofence Configuration for City-Based Delivery Zones

Each zone is a circle around a city centre. Generated customers, merchants
and agents are placed inside a zone so that orders stay within one city and
delivery distances stay realistic (2-10 km typical).
"""

import math
import random
from typing import Optional


DELIVERY_ZONES = [
    {
        "city": "Bengaluru",
        "state": "Karnataka",
        "lat": 12.9716,
        "lon": 77.5946,
        "radius_km": 12.0,
        "weight": 0.25,
    },
    {
        "city": "Mumbai",
        "state": "Maharashtra",
        "lat": 19.0760,
        "lon": 72.8777,
        "radius_km": 10.0,  # narrow peninsula, keep it tight
        "weight": 0.22,
    },
    {
        "city": "Delhi",
        "state": "Delhi",
        "lat": 28.6139,
        "lon": 77.2090,
        "radius_km": 15.0,
        "weight": 0.22,
    },
    {
        "city": "Hyderabad",
        "state": "Telangana",
        "lat": 17.3850,
        "lon": 78.4867,
        "radius_km": 12.0,
        "weight": 0.13,
    },
    {
        "city": "Pune",
        "state": "Maharashtra",
        "lat": 18.5204,
        "lon": 73.8567,
        "radius_km": 9.0,
        "weight": 0.10,
    },
    {
        "city": "Jaipur",
        "state": "Rajasthan",
        "lat": 26.9124,
        "lon": 75.7873,
        "radius_km": 8.0,
        "weight": 0.08,
    },
]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in kilometers using Haversine formula."""
    R = 6371  # Earth's radius in km

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def random_point_in_zone(zone: dict, spread: float = 1.0) -> tuple[float, float]:
    """Uniform random point within `spread` of the zone radius."""
    # sqrt keeps the density uniform over the disc
    r = zone["radius_km"] * spread * math.sqrt(random.random())
    theta = random.uniform(0, 2 * math.pi)

    # 1 degree of latitude is roughly 111 km
    lat_offset = (r * math.cos(theta)) / 111.0
    lon_offset = (r * math.sin(theta)) / (111.0 * math.cos(math.radians(zone["lat"])))

    return zone["lat"] + lat_offset, zone["lon"] + lon_offset


def get_zone_for_coordinates(lat: float, lon: float) -> Optional[dict]:
    """
    Find which delivery zone contains the given coordinates.
    Returns None if coordinates are outside all zones.
    """
    for zone in DELIVERY_ZONES:
        distance = haversine_distance(lat, lon, zone["lat"], zone["lon"])
        if distance <= zone["radius_km"]:
            return zone
    return None


def pick_zone() -> dict:
    return random.choices(DELIVERY_ZONES, weights=[z["weight"] for z in DELIVERY_ZONES])[0]
