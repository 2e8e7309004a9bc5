"""
Business metrics calculations for the pizza sales pipeline.

Every report is a pure function of a loaded snapshot. Money values are
rounded to 2 decimals with Python/numpy rounding (half to even). Rankings
that could tie use a secondary key in ascending order so results are
deterministic.
"""
import calendar
import logging
import traceback
import numpy as np
import pandas as pd

from transformation.quality import VALID_SIZES

logger = logging.getLogger(__name__)


def total_revenue(snapshot):
    """Sum of quantity * price over all order lines."""
    return _round_money(snapshot.lines['revenue'].sum())


def total_orders(snapshot):
    """Number of distinct orders placed."""
    return int(snapshot.orders['order_id'].nunique())


def most_popular_size(snapshot):
    """
    Pizza size with the most order lines.

    Returns:
        dict: {'size', 'count'}, or None when there are no order lines
    """
    counts = _count_by(snapshot.lines, 'size', 'count')
    return _first(_rank(counts, 'count', 'size'))


def top_n_best_sellers(snapshot, n=5):
    """
    Pizza types with the most order lines.

    Returns:
        DataFrame: name, count (descending, ties by name)
    """
    counts = _count_by(snapshot.lines, 'name', 'count')
    return _rank(counts, 'count', 'name', limit=n)


def distinct_categories(snapshot):
    return sorted(snapshot.pizza_types['category'].unique().tolist())


def average_order_value(snapshot):
    """
    Average revenue of a single order line.

    Returns:
        float, or None when there are no order lines
    """
    lines = snapshot.lines
    if lines.empty:
        return None
    return _round_money(lines['revenue'].mean())


def revenue_by_category(snapshot):
    """
    Revenue per pizza category and its share of the grand total.

    Returns:
        DataFrame: category, contribution, contribution_percent (descending)
    """
    by_category = (
        snapshot.lines.groupby('category')['revenue']
        .sum()
        .reset_index(name='contribution')
    )

    grand_total = by_category['contribution'].sum()
    by_category['contribution_percent'] = by_category['contribution'] * 100.0 / grand_total

    ranked = _rank(by_category, 'contribution', 'category')
    ranked['contribution'] = ranked['contribution'].round(2)
    ranked['contribution_percent'] = _round_percentages(ranked['contribution_percent'])
    return ranked


def hourly_distribution(snapshot):
    """
    Number of orders placed in each hour of the day.

    Returns:
        DataFrame: hour, sales_count (descending, ties by hour)
    """
    orders = snapshot.orders
    hours = orders['time'].map(lambda t: t.hour).astype('int64')
    counts = (
        orders.assign(hour=hours)
        .groupby('hour')['order_id']
        .count()
        .reset_index(name='sales_count')
    )
    return _rank(counts, 'sales_count', 'hour')


def least_selling_pizzas(snapshot, n=10):
    """
    Pizza types with the fewest order lines.

    Pizza types that were never ordered do not appear.

    Returns:
        DataFrame: name, sales_count (ascending, ties by name)
    """
    counts = _count_by(snapshot.lines, 'name', 'sales_count')
    return _rank(counts, 'sales_count', 'name', descending=False, limit=n)


def average_revenue_per_order(snapshot):
    """
    Total revenue divided by the number of distinct orders that have lines.

    Returns:
        float, or None when there are no order lines
    """
    lines = snapshot.lines
    if lines.empty:
        return None
    return _round_money(lines['revenue'].sum() / lines['order_id'].nunique())


def monthly_revenue_trend(snapshot):
    """
    Revenue per calendar month, lowest first.

    Months from different years are combined.

    Returns:
        DataFrame: month (Jan..Dec), total_revenue (ascending, ties by month)
    """
    lines = snapshot.lines
    monthly = (
        lines.assign(month_number=lines['date'].dt.month)
        .groupby('month_number')['revenue']
        .sum()
        .reset_index(name='total_revenue')
    )

    ranked = _rank(monthly, 'total_revenue', 'month_number', descending=False)
    ranked['month'] = ranked['month_number'].map(lambda m: calendar.month_abbr[int(m)])
    ranked['total_revenue'] = ranked['total_revenue'].round(2)
    return ranked[['month', 'total_revenue']]


def top_revenue_day_of_week(snapshot):
    """
    Day of the week with the highest revenue.

    Returns:
        dict: {'day', 'total_revenue'}, or None when there are no order lines
    """
    lines = snapshot.lines
    by_weekday = (
        lines.assign(weekday=lines['date'].dt.dayofweek)
        .groupby('weekday')['revenue']
        .sum()
        .reset_index(name='total_revenue')
    )

    top = _first(_rank(by_weekday, 'total_revenue', 'weekday'))
    if top is None:
        return None
    return {
        'day': calendar.day_name[int(top['weekday'])],
        'total_revenue': _round_money(top['total_revenue'])
    }


def top_revenue_type_size_combo(snapshot):
    """
    Pizza type and size pair with the highest revenue.

    Returns:
        dict: {'pizza_type_id', 'name', 'size', 'total_revenue'}, or None
    """
    combos = (
        snapshot.lines.groupby(['pizza_type_id', 'name', 'size'])['revenue']
        .sum()
        .reset_index(name='total_revenue')
    )

    top = _first(_rank(combos, 'total_revenue', ['pizza_type_id', 'size']))
    if top is not None:
        top['total_revenue'] = _round_money(top['total_revenue'])
    return top


def price_tier_performance(snapshot):
    """
    Compare sales of high-priced and low-priced pizzas.

    A pizza is "High" when its price is at or above the mean price of all
    pizzas in the catalogue, otherwise "Low".

    Returns:
        DataFrame: price_category, total_quantity_sold, total_revenue
    """
    pizzas = snapshot.pizzas
    avg_price = pizzas['price'].mean()
    tiers = pd.Series(
        np.where(pizzas['price'] >= avg_price, 'High', 'Low'),
        index=pizzas['pizza_id']
    )

    lines = snapshot.lines
    performance = (
        lines.assign(price_category=lines['pizza_id'].map(tiers))
        .groupby('price_category')
        .agg(total_quantity_sold=('quantity', 'sum'), total_revenue=('revenue', 'sum'))
        .reset_index()
        .sort_values('price_category')
        .reset_index(drop=True)
    )
    performance['total_revenue'] = performance['total_revenue'].round(2)
    return performance


def table_row_counts(snapshot):
    """Row count of each loaded table."""
    return pd.DataFrame(
        [(name, len(df)) for name, df in snapshot.tables().items()],
        columns=['table_name', 'count']
    )


def distinct_sizes(snapshot):
    present = set(snapshot.pizzas['size'])
    return [size for size in VALID_SIZES if size in present]


def distinct_pizza_names(snapshot):
    return sorted(snapshot.pizza_types['name'].unique().tolist())


def run_all_reports(snapshot, top_n=5, least_n=10):
    """
    Compute every report over the snapshot.

    Returns:
        dict: report name -> result, in presentation order
    """
    reports = [
        ('table_row_counts', table_row_counts, {}),
        ('distinct_sizes', distinct_sizes, {}),
        ('distinct_categories', distinct_categories, {}),
        ('distinct_pizza_names', distinct_pizza_names, {}),
        ('total_revenue', total_revenue, {}),
        ('total_orders', total_orders, {}),
        ('most_popular_size', most_popular_size, {}),
        ('top_n_best_sellers', top_n_best_sellers, {'n': top_n}),
        ('average_order_value', average_order_value, {}),
        ('revenue_by_category', revenue_by_category, {}),
        ('hourly_distribution', hourly_distribution, {}),
        ('least_selling_pizzas', least_selling_pizzas, {'n': least_n}),
        ('average_revenue_per_order', average_revenue_per_order, {}),
        ('monthly_revenue_trend', monthly_revenue_trend, {}),
        ('top_revenue_day_of_week', top_revenue_day_of_week, {}),
        ('top_revenue_type_size_combo', top_revenue_type_size_combo, {}),
        ('price_tier_performance', price_tier_performance, {}),
    ]

    logger.info(f"Calculating {len(reports)} reports")
    results = {}
    for name, report, kwargs in reports:
        try:
            results[name] = report(snapshot, **kwargs)
        except Exception as e:
            logger.error(f"Error calculating report '{name}': {str(e)}")
            logger.error(traceback.format_exc())
            raise

    logger.info("All reports calculated")
    return results


def _count_by(lines, key, name):
    return lines.groupby(key).size().reset_index(name=name)


def _rank(df, metric, keys, descending=True, limit=None):
    keys = [keys] if isinstance(keys, str) else list(keys)
    ranked = df.sort_values(
        [metric] + keys,
        ascending=[not descending] + [True] * len(keys),
        kind='mergesort'
    )
    if limit is not None:
        ranked = ranked.head(max(int(limit), 0))
    return ranked.reset_index(drop=True)


def _first(df):
    if df.empty:
        return None
    # to_dict keeps each column's dtype; iloc[0] would upcast ints to float
    row = df.iloc[:1].to_dict('records')[0]
    return {key: (value.item() if isinstance(value, np.generic) else value)
            for key, value in row.items()}


def _round_money(value):
    return round(float(value), 2)


def _round_percentages(percent):
    """
    Round shares of a whole to 2 decimals so they still add up to 100.00.

    Largest remainder method: every share is floored to whole hundredths and
    the hundredths left over go to the shares with the biggest remainders,
    earlier rows first on ties. Shares that are NaN (zero grand total) are
    left alone.
    """
    if percent.empty or percent.isna().any():
        return percent.round(2)

    # 6 decimals absorb float noise such as 4883.999999999
    hundredths = np.round(percent.to_numpy(dtype=float) * 100, 6)
    floored = np.floor(hundredths)
    remainders = hundredths - floored
    missing = int(round(10000 - floored.sum()))
    if missing > 0:
        order = np.argsort(-remainders, kind='mergesort')
        floored[order[:missing]] += 1
    return pd.Series(floored / 100, index=percent.index)
