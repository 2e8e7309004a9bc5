"""Shared fixtures: small pizza sales datasets written to temporary CSV files."""

import pytest

from ingestion.loader import load_snapshot_from_paths

PIZZA_TYPES_CSV = """pizza_type_id,name,category,ingredients
bbq_ckn,The Barbecue Chicken Pizza,Chicken,"Barbecued Chicken, Red Peppers, Green Peppers"
hawaiian,The Hawaiian Pizza,Classic,"Sliced Ham, Pineapple, Mozzarella Cheese"
margherita,The Margherita Pizza,Classic,"Tomatoes, Mozzarella Cheese"
five_cheese,The Five Cheese Pizza,Veggie,"Mozzarella Cheese, Provolone Cheese"
"""

# Mean price is 16.35: three "High" pizzas, two "Low"
PIZZAS_CSV = """pizza_id,pizza_type_id,size,price
bbq_ckn_s,bbq_ckn,s,12.75
bbq_ckn_l,bbq_ckn,L,20.75
hawaiian_m,hawaiian,m,13.25
margherita_l,margherita,l ,16.50
five_cheese_l,five_cheese,L,18.50
"""

# 2024-01-05 Friday, 2024-02-03 Saturday, 2024-02-04 Sunday, 2024-03-11 Monday
ORDERS_CSV = """order_id,date,time
1,2024-01-05,18:30:00
2,2024-01-05,12:10:00
3,2024-02-03,12:45:00
4,2024-02-04,19:05
5,2024-03-11,13:00:00
"""

ORDER_DETAILS_CSV = """order_details_id,order_id,pizza_id,quantity
1,1,bbq_ckn_l,2
2,1,margherita_l,1
3,2,hawaiian_m,3
4,3,bbq_ckn_s,1
5,3,margherita_l,2
6,4,five_cheese_l,1
7,4,bbq_ckn_l,1
"""

SAMPLE_SOURCES = {
    'orders': ORDERS_CSV,
    'order_details': ORDER_DETAILS_CSV,
    'pizzas': PIZZAS_CSV,
    'pizza_types': PIZZA_TYPES_CSV,
}


@pytest.fixture
def write_sources(tmp_path):
    """Factory writing the four source files and returning their paths.

    Any table not given falls back to the sample dataset.
    """

    def _write(**contents):
        paths = {}
        for table_name, default in SAMPLE_SOURCES.items():
            path = tmp_path / f"{table_name}.csv"
            path.write_text(contents.get(table_name, default))
            paths[table_name] = str(path)
        return paths

    return _write


@pytest.fixture
def sample_paths(write_sources):
    return write_sources()


@pytest.fixture
def snapshot(sample_paths):
    """Snapshot of the sample dataset (182.75 total revenue over 7 lines)."""
    return load_snapshot_from_paths(sample_paths)


@pytest.fixture
def single_order_snapshot(write_sources):
    """One Friday evening order for two large Margheritas."""
    paths = write_sources(
        orders="order_id,date,time\nO1,2024-01-05,18:30\n",
        order_details="order_id,pizza_id,quantity\nO1,P1,2\n",
        pizzas="pizza_id,pizza_type_id,size,price\nP1,PT1,l,9.99\n",
        pizza_types="pizza_type_id,name,category,ingredients\nPT1,Margherita,Classic,\"Tomatoes, Basil\"\n",
    )
    return load_snapshot_from_paths(paths)


@pytest.fixture
def empty_sales_snapshot(write_sources):
    """Catalogue and orders present, but no order lines."""
    paths = write_sources(order_details="order_details_id,order_id,pizza_id,quantity\n")
    return load_snapshot_from_paths(paths)
