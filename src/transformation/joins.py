"""
Data joining operations for the pizza sales pipeline.
"""
import logging
import traceback
import pandas as pd

from transformation.quality import ReferentialIntegrityError

logger = logging.getLogger(__name__)

LINE_COLUMNS = [
    'order_details_id', 'order_id', 'date', 'time', 'pizza_id', 'pizza_type_id',
    'name', 'category', 'size', 'price', 'quantity', 'revenue'
]


def check_referential_integrity(orders, order_details, pizzas, pizza_types):
    """
    Drop rows whose foreign keys do not resolve and report them.

    Pizzas with an unknown pizza type are removed from the catalogue first,
    so order lines pointing at them are treated as orphans too.

    Returns:
        tuple: (orders, order_details, pizzas, pizza_types, list of ReferentialIntegrityError)
    """
    errors = []

    unknown_type = ~pizzas['pizza_type_id'].isin(pizza_types['pizza_type_id'])
    for row in pizzas[unknown_type].itertuples(index=False):
        errors.append(ReferentialIntegrityError(
            'pizzas', 'pizza_type_id', 'pizza_types', row.pizza_type_id,
            {'pizza_id': row.pizza_id, 'pizza_type_id': row.pizza_type_id}
        ))
    if unknown_type.any():
        logger.warning(f"Found {int(unknown_type.sum())} pizzas with an unknown pizza type")
    pizzas = pizzas[~unknown_type].reset_index(drop=True)

    foreign_keys = [
        ('order_id', orders['order_id'], 'orders'),
        ('pizza_id', pizzas['pizza_id'], 'pizzas'),
    ]
    orphaned = pd.Series(False, index=order_details.index)
    for column, known_keys, reference_table in foreign_keys:
        missing = ~order_details[column].isin(known_keys)
        for row in order_details[missing].itertuples(index=False):
            errors.append(ReferentialIntegrityError(
                'order_details', column, reference_table, getattr(row, column),
                {
                    'order_details_id': row.order_details_id,
                    'order_id': row.order_id,
                    'pizza_id': row.pizza_id,
                    'quantity': int(row.quantity)
                }
            ))
        if missing.any():
            logger.warning(
                f"Referential integrity issue: {int(missing.sum())} order lines "
                f"have no matching {reference_table}.{column}"
            )
        orphaned |= missing

    order_details = order_details[~orphaned].reset_index(drop=True)
    return orders, order_details, pizzas, pizza_types, errors


def join_order_lines(snapshot):
    """
    Join order lines with orders, pizzas and pizza types into a single DataFrame.

    Returns:
        DataFrame: one row per order line with its revenue (quantity * price)
    """
    try:
        lines = snapshot.order_details.merge(snapshot.orders, on='order_id', how='inner')
        lines = lines.merge(snapshot.pizzas, on='pizza_id', how='inner')
        lines = lines.merge(
            snapshot.pizza_types[['pizza_type_id', 'name', 'category']],
            on='pizza_type_id',
            how='inner'
        )

        lines['revenue'] = lines['quantity'] * lines['price']

        logger.info(f"Joined data has {len(lines)} order lines")
        return lines[LINE_COLUMNS]
    except Exception as e:
        logger.error(f"Error joining data: {str(e)}")
        logger.error(traceback.format_exc())
        raise


def check_for_missing_relationships(snapshot):
    """
    Count orders without lines and pizzas that have never been ordered.

    These are not errors, only worth reporting alongside the load results.
    """
    order_ids_in_lines = set(snapshot.order_details['order_id'])
    pizza_ids_in_lines = set(snapshot.order_details['pizza_id'])

    orders_with_no_items = set(snapshot.orders['order_id']) - order_ids_in_lines
    unused_pizzas = set(snapshot.pizzas['pizza_id']) - pizza_ids_in_lines

    results = {
        'orders_with_no_items_count': len(orders_with_no_items),
        'orders_with_no_items': sorted(orders_with_no_items)[:10],
        'unused_pizzas_count': len(unused_pizzas),
        'unused_pizzas': sorted(unused_pizzas)[:10]
    }

    if results['orders_with_no_items_count'] > 0:
        logger.warning(f"Found {results['orders_with_no_items_count']} orders with no items")

    if results['unused_pizzas_count'] > 0:
        logger.info(f"Found {results['unused_pizzas_count']} pizzas that have never been ordered")

    return results
