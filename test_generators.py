from db import get_table_counts
from generators import AgentGenerator, OrderGenerator
from generators.geofence import DELIVERY_ZONES, get_zone_for_coordinates, haversine_distance
from main import generate_data
from models import OrderStatus


def test_haversine_known_distance():
    # Bengaluru to Mysuru is roughly 128 km as the crow flies
    assert 125 < haversine_distance(12.9716, 77.5946, 12.2958, 76.6394) < 132


def test_zone_lookup():
    bengaluru = DELIVERY_ZONES[0]
    assert get_zone_for_coordinates(bengaluru["lat"], bengaluru["lon"]) is bengaluru
    assert get_zone_for_coordinates(0.0, 0.0) is None


def test_agents_are_saved_inside_zones():
    generator = AgentGenerator(seed=7)
    agents = generator.generate_batch(5)
    generator.save_to_db(agents)

    assert get_table_counts()["delivery_agents"] == 5
    for agent in agents:
        location = agent.current_location
        assert get_zone_for_coordinates(location.latitude, location.longitude) is not None


def test_order_drafts_are_consistent():
    generator = OrderGenerator(seed=7)

    for draft in generator.generate_batch(20):
        pricing = draft.pricing
        expected_total = (pricing.items_total - pricing.discount + pricing.delivery_fee
                          + pricing.platform_fee + pricing.tip + pricing.taxes)
        assert abs(pricing.total_amount - expected_total) < 0.01
        assert draft.customer.address.city == draft.restaurant.address.city
        assert draft.delivery_info.distance <= 20
        assert draft.delivery_info.estimated_time >= 15


def test_generated_orders_are_pending():
    generator = OrderGenerator(seed=7)
    orders = generator.save_to_db(generator.generate_batch(3))

    assert len(orders) == 3
    assert all(o.status.current == OrderStatus.PENDING for o in orders)
    assert get_table_counts()["orders"] == 3


def test_agents_already_on_file_are_skipped():
    first = AgentGenerator(seed=7)
    saved = first.save_to_db(first.generate_batch(4))

    again = AgentGenerator(seed=7)
    repeated = again.save_to_db(again.generate_batch(4))

    assert len(saved) == 4
    assert repeated == []
    assert get_table_counts()["delivery_agents"] == 4


def test_generate_data_twice_without_reset():
    generate_data(num_orders=5, num_agents=5, seed=42)
    agent_ids, orders = generate_data(num_orders=5, num_agents=5, seed=42)

    counts = get_table_counts()
    assert len(orders) == 5
    assert counts["orders"] == 10
    # The second run draws fresh identities instead of replaying the first
    assert counts["delivery_agents"] > 5
    assert len(agent_ids) <= counts["delivery_agents"]
