#!/usr/bin/env python3
"""
Grocery Delivery Order Service CLI

Seed demo delivery agents and orders, walk some of them through the
delivery lifecycle, and export the results.
"""

import argparse
import json
import random
import sqlite3
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import db
from db import init_database, get_table_counts
from generators import AgentGenerator, OrderGenerator
from models import OrderStatus
from services import DispatchService


def generate_data(num_orders: int, num_agents: int | None = None, seed: int = 42):
    """Generate agents and orders based on target order count"""
    # ~10 orders per agent avg
    num_agents = num_agents or max(5, num_orders // 10)

    # Re-running on a populated database must not replay the same fake identities
    existing = get_table_counts()
    if existing["delivery_agents"] or existing["orders"]:
        seed += existing["delivery_agents"] + existing["orders"]
        print(f"\nℹ️  Database already holds data, using seed {seed}")

    print(f"\n📊 Generating data for {num_orders} orders...")
    print(f"   - {num_agents} delivery agents\n")

    print("🛵 Generating delivery agents...")
    agent_gen = AgentGenerator(seed)
    agent_gen.save_to_db(agent_gen.generate_batch(num_agents))

    print("📝 Generating orders...")
    order_gen = OrderGenerator(seed)
    orders = order_gen.save_to_db(order_gen.generate_batch(num_orders))

    print("\n✅ Data generation complete!")
    return agent_gen.get_active_ids(), orders


def simulate_deliveries(agent_ids: list[str], orders: list, share: float = 0.6):
    """Walk a share of the pending orders through assignment and delivery."""
    if not agent_ids:
        print("No active agents, skipping delivery simulation")
        return

    dispatch = DispatchService()
    progressed = 0
    # Stage each order stops at, weighted toward completed deliveries
    stages = [
        (OrderStatus.CONFIRMED, 0.10),
        (OrderStatus.PREPARING, 0.10),
        (OrderStatus.PICKED_UP, 0.10),
        (OrderStatus.DELIVERED, 0.60),
        (OrderStatus.CANCELLED, 0.10),
    ]
    targets, weights = zip(*stages)

    print("\n🚚 Simulating deliveries...")
    for order in orders:
        if random.random() > share:
            continue
        agent_id = random.choice(agent_ids)
        target = random.choices(targets, weights=weights)[0]

        if target == OrderStatus.CANCELLED:
            dispatch.cancel_order(order.order_id, "Customer changed their mind", "customer")
            progressed += 1
            continue

        dispatch.assign_agent(order.order_id, agent_id)
        if target != OrderStatus.CONFIRMED:
            dispatch.accept_order(order.order_id, agent_id)
        if target in (OrderStatus.PICKED_UP, OrderStatus.DELIVERED):
            dispatch.agent_update_status(order.order_id, agent_id, OrderStatus.READY_FOR_PICKUP)
            dispatch.agent_update_status(order.order_id, agent_id, OrderStatus.PICKED_UP)
        if target == OrderStatus.DELIVERED:
            dispatch.agent_update_status(order.order_id, agent_id, OrderStatus.IN_TRANSIT)
            dispatch.agent_update_status(order.order_id, agent_id, OrderStatus.DELIVERED)
        progressed += 1

    print(f"   Progressed {progressed}/{len(orders)} orders")


def export_to_csv():
    """Export orders and delivery agents to CSV files"""
    import pandas as pd

    export_dir = Path(__file__).parent / "exports"
    export_dir.mkdir(exist_ok=True)

    conn = sqlite3.connect(db.DATABASE_PATH)

    print("\n📁 Exporting to CSV...")
    agents = pd.read_sql_query("SELECT * FROM delivery_agents", conn)
    documents = pd.read_sql_query("SELECT document FROM orders", conn)
    conn.close()

    # Flatten nested order documents into dotted columns, lists stay as JSON
    orders = pd.json_normalize([json.loads(doc) for doc in documents["document"]])
    for column in ("items", "status.timeline", "assignment.rejected_by", "special_requests"):
        if column in orders:
            orders[column] = orders[column].apply(json.dumps)

    for name, df in (("delivery_agents", agents), ("orders", orders)):
        output_path = export_dir / f"{name}.csv"
        df.to_csv(output_path, index=False)
        print(f"   - {output_path} ({len(df)} rows)")

    print("\n✅ Export complete!")


def show_stats():
    """Display current database statistics"""
    counts = get_table_counts()

    print("\n📈 Database Statistics:")
    print("-" * 30)
    for table, count in counts.items():
        print(f"   {table:15} {count:>8,} rows")
    print("-" * 30)
    print(f"   {'Total':15} {sum(counts.values()):>8,} rows")
    print(f"\n   Database: {db.DATABASE_PATH}")


def main():
    parser = argparse.ArgumentParser(
        description="Seed and inspect the grocery delivery order service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                        # Generate 100 orders (default)
  python main.py --orders 500 --agents 40
  python main.py --reset --orders 200   # Reset DB and generate fresh
  python main.py --no-simulate          # Leave every order pending
  python main.py --export               # Export tables to CSV
  python main.py --stats                # Show database statistics
        """
    )

    parser.add_argument(
        "--orders", "-n",
        type=int,
        default=100,
        help="Number of orders to generate (default: 100)"
    )

    parser.add_argument(
        "--agents", "-a",
        type=int,
        default=None,
        help="Number of delivery agents to generate (default: orders / 10, at least 5)"
    )

    parser.add_argument(
        "--reset", "-r",
        action="store_true",
        help="Reset database before generating"
    )

    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)"
    )

    parser.add_argument(
        "--no-simulate",
        action="store_true",
        help="Do not progress generated orders through the delivery lifecycle"
    )

    parser.add_argument(
        "--export", "-e",
        action="store_true",
        help="Export orders and delivery agents to CSV files"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show database statistics"
    )

    args = parser.parse_args()

    # Initialize database
    init_database(reset=args.reset)

    if args.stats:
        show_stats()
        return

    if args.export:
        export_to_csv()
        return

    agent_ids, orders = generate_data(num_orders=args.orders, num_agents=args.agents, seed=args.seed)
    if not args.no_simulate:
        simulate_deliveries(agent_ids, orders)

    # Show final stats
    show_stats()


if __name__ == "__main__":
    main()
