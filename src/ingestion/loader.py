"""
Data ingestion components for the pizza sales pipeline.

Each source file is read as text, then validated table by table. Rows that
fail a check are left out of the clean frame and reported; the load itself
only fails on structural problems such as a missing file or column.
"""
import os
import logging
import traceback
import numpy as np
import pandas as pd

from ingestion.snapshot import Snapshot, TABLE_NAMES
from transformation.joins import check_referential_integrity
from transformation.quality import (
    VALID_SIZES,
    OUT_OF_RANGE,
    MALFORMED_ROW,
    LoadValidationError,
    check_required_columns,
    check_missing_values,
    flag_invalid,
    drop_duplicate_keys,
)

logger = logging.getLogger(__name__)

# Columns that must be present in each file
SOURCE_COLUMNS = {
    'orders': ['order_id', 'date', 'time'],
    'order_details': ['order_id', 'pizza_id', 'quantity'],
    'pizzas': ['pizza_id', 'pizza_type_id', 'size', 'price'],
    'pizza_types': ['pizza_type_id', 'name', 'category', 'ingredients']
}

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMATS = ['%H:%M:%S', '%H:%M']


def read_source(file_path, table_name):
    """
    Read one comma-separated source file with a header row.

    Args:
        file_path (str): Path to the CSV file
        table_name (str): Name used in logs and violations

    Returns:
        tuple: (DataFrame of stripped text values, list of LoadValidationError
        for rows with too many fields)
    """
    logger.info(f"Loading data from {file_path} into '{table_name}'")

    if not os.path.exists(file_path):
        logger.error(f"File not found: {file_path}")
        raise FileNotFoundError(f"Source file for '{table_name}' not found: {file_path}")

    bad_lines = []

    def _collect_bad_line(fields):
        bad_lines.append(fields)
        return None

    df = pd.read_csv(
        file_path,
        dtype=str,
        keep_default_na=False,
        na_values=[''],
        on_bad_lines=_collect_bad_line,
        engine='python'
    )

    # Clean column names and values by stripping whitespace
    df = df.rename(columns=lambda x: x.strip() if isinstance(x, str) else x)
    for col in df.columns:
        df[col] = df[col].str.strip().replace('', np.nan)

    violations = [
        LoadValidationError(
            table_name,
            MALFORMED_ROW,
            value=','.join(fields),
            message=f"{table_name}: row has {len(fields)} fields, expected {len(df.columns)}"
        )
        for fields in bad_lines
    ]
    if violations:
        logger.warning(f"Skipped {len(violations)} malformed rows in {file_path}")

    logger.info(f"Loaded {len(df)} rows from {file_path}")
    return df, violations


def validate_orders(df):
    """
    Parse order dates and times and drop rows that cannot be used.

    Returns:
        tuple: (clean DataFrame with columns order_id, date, time; violations)
    """
    check_required_columns(df, 'orders', SOURCE_COLUMNS['orders'])
    ok, violations = check_missing_values(df, 'orders', ['order_id', 'date', 'time'])

    dates = pd.to_datetime(df['date'], format=DATE_FORMAT, errors='coerce')
    times = _parse_times(df['time'])

    bad_date = ok & dates.isnull()
    bad_time = ok & times.isnull()
    violations += flag_invalid(df, 'orders', 'date', bad_date)
    violations += flag_invalid(df, 'orders', 'time', bad_time)
    ok &= ~bad_date & ~bad_time

    clean = pd.DataFrame({
        'order_id': df['order_id'],
        'date': dates,
        'time': times.dt.time
    })[ok]

    clean, duplicates = drop_duplicate_keys(clean, 'orders', 'order_id')
    return clean.reset_index(drop=True), violations + duplicates


def validate_order_details(df):
    """
    Check order line references and quantities.

    A synthetic ``order_details_id`` is generated when the file has none.
    """
    check_required_columns(df, 'order_details', SOURCE_COLUMNS['order_details'])
    if 'order_details_id' not in df.columns:
        df = df.copy()
        df.insert(0, 'order_details_id', [str(i) for i in range(1, len(df) + 1)])

    ok, violations = check_missing_values(
        df, 'order_details', ['order_details_id', 'order_id', 'pizza_id', 'quantity']
    )

    quantity = pd.to_numeric(df['quantity'], errors='coerce')
    not_numeric = ok & quantity.isnull()
    out_of_range = ok & quantity.notnull() & ((quantity <= 0) | (quantity % 1 != 0))
    violations += flag_invalid(df, 'order_details', 'quantity', not_numeric)
    violations += flag_invalid(df, 'order_details', 'quantity', out_of_range, reason=OUT_OF_RANGE)
    ok &= ~not_numeric & ~out_of_range

    clean = df.loc[ok, ['order_details_id', 'order_id', 'pizza_id']].copy()
    clean['quantity'] = quantity[ok].astype('int64')

    clean, duplicates = drop_duplicate_keys(clean, 'order_details', 'order_details_id')
    return clean.reset_index(drop=True), violations + duplicates


def validate_pizzas(df):
    """
    Normalize sizes to upper case and check prices.

    Sizes arrive in mixed case ("l", "L", "L "); the stored form is always
    one of VALID_SIZES.
    """
    check_required_columns(df, 'pizzas', SOURCE_COLUMNS['pizzas'])
    ok, violations = check_missing_values(
        df, 'pizzas', ['pizza_id', 'pizza_type_id', 'size', 'price']
    )

    sizes = df['size'].str.upper()
    bad_size = ok & ~sizes.isin(VALID_SIZES)
    violations += flag_invalid(df, 'pizzas', 'size', bad_size)

    price = pd.to_numeric(df['price'], errors='coerce')
    not_numeric = ok & price.isnull()
    negative = ok & price.notnull() & (price < 0)
    violations += flag_invalid(df, 'pizzas', 'price', not_numeric)
    violations += flag_invalid(df, 'pizzas', 'price', negative, reason=OUT_OF_RANGE)
    ok &= ~bad_size & ~not_numeric & ~negative

    clean = df.loc[ok, ['pizza_id', 'pizza_type_id']].copy()
    clean['size'] = sizes[ok]
    clean['price'] = price[ok].astype('float64')

    clean, duplicates = drop_duplicate_keys(clean, 'pizzas', 'pizza_id')
    return clean.reset_index(drop=True), violations + duplicates


def validate_pizza_types(df):
    """Check pizza type names and categories and split the ingredient lists."""
    check_required_columns(df, 'pizza_types', SOURCE_COLUMNS['pizza_types'])
    ok, violations = check_missing_values(
        df, 'pizza_types', ['pizza_type_id', 'name', 'category']
    )

    clean = df.loc[ok, ['pizza_type_id', 'name', 'category']].copy()
    clean['ingredients'] = df.loc[ok, 'ingredients'].map(_split_ingredients)

    clean, duplicates = drop_duplicate_keys(clean, 'pizza_types', 'pizza_type_id')
    return clean.reset_index(drop=True), violations + duplicates


VALIDATORS = {
    'orders': validate_orders,
    'order_details': validate_order_details,
    'pizzas': validate_pizzas,
    'pizza_types': validate_pizza_types
}


def load_snapshot_from_paths(paths):
    """
    Load, validate and cross-check the four source files.

    Args:
        paths (dict): table name -> CSV path for orders, order_details,
            pizzas and pizza_types

    Returns:
        Snapshot: clean tables plus all collected violations
    """
    try:
        clean = {}
        violations = []

        for table_name in TABLE_NAMES:
            raw_df, malformed = read_source(paths[table_name], table_name)
            clean[table_name], table_violations = VALIDATORS[table_name](raw_df)
            violations += malformed + table_violations

        orders, order_details, pizzas, pizza_types, integrity_errors = check_referential_integrity(
            clean['orders'],
            clean['order_details'],
            clean['pizzas'],
            clean['pizza_types']
        )

        snapshot = Snapshot(
            orders=orders,
            order_details=order_details,
            pizzas=pizzas,
            pizza_types=pizza_types,
            violations=tuple(violations + integrity_errors)
        )

        logger.info(
            "Snapshot loaded: " + ", ".join(
                f"{name}={len(df)}" for name, df in snapshot.tables().items()
            )
        )
        return snapshot
    except Exception as e:
        logger.error(f"Failed to load source data: {str(e)}")
        logger.error(traceback.format_exc())
        raise


def load_snapshot(config):
    """Load the snapshot from the input files named in the configuration."""
    paths = {table_name: config.get_source_path(table_name) for table_name in TABLE_NAMES}
    return load_snapshot_from_paths(paths)


def _parse_times(values):
    parsed = pd.to_datetime(values, format=TIME_FORMATS[0], errors='coerce')
    for fmt in TIME_FORMATS[1:]:
        parsed = parsed.fillna(pd.to_datetime(values, format=fmt, errors='coerce'))
    return parsed


def _split_ingredients(value):
    if not isinstance(value, str):
        return ()
    return tuple(part.strip() for part in value.split(',') if part.strip())
