"""
Data quality checks for the pizza sales pipeline.

Row-level problems are collected as exception instances rather than raised,
so a load always finishes with both the clean rows and a list of what was
rejected. Only structural problems (a missing column, a missing file) and an
explicit ``require_value`` call raise.
"""
import logging
import pandas as pd

logger = logging.getLogger(__name__)

VALID_SIZES = ('S', 'M', 'L', 'XL', 'XXL')

# Reasons attached to LoadValidationError
MISSING_VALUE = 'missing_value'
INVALID_VALUE = 'invalid_value'
OUT_OF_RANGE = 'out_of_range'
DUPLICATE_KEY = 'duplicate_key'
MALFORMED_ROW = 'malformed_row'
MISSING_COLUMN = 'missing_column'

VIOLATION_COLUMNS = ['kind', 'table', 'reason', 'column', 'row_number', 'value', 'message']


class DataQualityError(Exception):
    """Base class for problems found in the source data."""

    kind = 'data_quality'

    def __init__(self, table, reason, message):
        super().__init__(message)
        self.table = table
        self.reason = reason
        self.message = message

    def to_record(self):
        return {
            'kind': self.kind,
            'table': self.table,
            'reason': self.reason,
            'column': None,
            'row_number': None,
            'value': None,
            'message': self.message
        }


class LoadValidationError(DataQualityError):
    """A source row (or file) fails a required-field or type constraint."""

    kind = 'load_validation'

    def __init__(self, table, reason, column=None, row_number=None, value=None, message=None):
        if message is None:
            location = f" at line {row_number}" if row_number is not None else ""
            message = f"{table}.{column}: {reason}{location} (value={value!r})"
        super().__init__(table, reason, message)
        self.column = column
        self.row_number = row_number
        self.value = value

    def to_record(self):
        record = super().to_record()
        record.update({
            'column': self.column,
            'row_number': self.row_number,
            'value': None if self.value is None else str(self.value)
        })
        return record


class ReferentialIntegrityError(DataQualityError):
    """A row references a key that does not exist in the parent table."""

    kind = 'referential_integrity'

    def __init__(self, table, column, reference_table, value, row):
        message = (
            f"{table}.{column}={value!r} has no matching {reference_table} row "
            f"(row: {row})"
        )
        super().__init__(table, 'orphaned_reference', message)
        self.column = column
        self.reference_table = reference_table
        self.value = value
        self.row = row

    def to_record(self):
        record = super().to_record()
        record.update({'column': self.column, 'value': str(self.value)})
        return record


class EmptyInputError(Exception):
    """A report that needs at least one eligible row was run over none."""

    def __init__(self, report_name):
        super().__init__(f"Report '{report_name}' has no eligible rows")
        self.report_name = report_name


def require_value(report_name, value):
    """
    Return ``value`` unless it is the "no value" result of an empty report.

    Raises:
        EmptyInputError: if ``value`` is None
    """
    if value is None:
        raise EmptyInputError(report_name)
    return value


def check_required_columns(df, table_name, columns):
    """
    Make sure a source table carries every column we need.

    Raises:
        LoadValidationError: for the first missing column
    """
    missing = [col for col in columns if col not in df.columns]
    if missing:
        logger.error(f"Table '{table_name}' is missing columns {missing}")
        raise LoadValidationError(
            table_name,
            MISSING_COLUMN,
            column=missing[0],
            message=f"Table '{table_name}' is missing required columns: {', '.join(missing)}"
        )


def check_missing_values(df, table_name, columns):
    """
    Flag rows with an empty required field.

    Returns:
        tuple: (boolean mask of rows without missing values, list of violations)
    """
    violations = []
    ok = pd.Series(True, index=df.index)

    for col in columns:
        missing = df[col].isnull()
        if missing.any():
            logger.warning(f"Table '{table_name}' has {int(missing.sum())} missing values in '{col}'")
            for idx in df.index[missing]:
                violations.append(LoadValidationError(
                    table_name, MISSING_VALUE, column=col, row_number=_line_number(idx)
                ))
        ok &= ~missing

    return ok, violations


def flag_invalid(df, table_name, column, invalid_mask, reason=INVALID_VALUE, raw=None):
    """
    Build violations for the rows selected by ``invalid_mask``.

    ``raw`` holds the original text values so the report shows what was read
    rather than the coerced result.
    """
    raw = df[column] if raw is None else raw
    violations = [
        LoadValidationError(
            table_name, reason, column=column, row_number=_line_number(idx), value=raw.loc[idx]
        )
        for idx in df.index[invalid_mask]
    ]
    if violations:
        logger.warning(f"Table '{table_name}' has {len(violations)} {reason} rows in '{column}'")
    return violations


def drop_duplicate_keys(df, table_name, key):
    """
    Keep the first occurrence of each primary key.

    Returns:
        tuple: (deduplicated DataFrame, list of violations)
    """
    duplicated = df.duplicated(subset=[key], keep='first')
    violations = flag_invalid(df, table_name, key, duplicated, reason=DUPLICATE_KEY)
    return df[~duplicated], violations


def violations_to_frame(violations):
    """Convert collected violations to a DataFrame for logging or export."""
    return pd.DataFrame(
        [violation.to_record() for violation in violations],
        columns=VIOLATION_COLUMNS
    )


def summarize_violations(violations):
    """
    Count violations per kind, table and reason and log the totals.

    Returns:
        dict: {'total': int, 'by_kind': {...}, 'by_table': {...}, 'samples': [...]}
    """
    frame = violations_to_frame(violations)
    summary = {
        'total': len(frame),
        'by_kind': frame['kind'].value_counts().to_dict() if len(frame) else {},
        'by_table': frame.groupby(['table', 'reason']).size().to_dict() if len(frame) else {},
        'samples': [violation.message for violation in violations[:10]]
    }

    if summary['total'] > 0:
        logger.warning(f"Found a total of {summary['total']} data quality issues")
        for (table, reason), count in summary['by_table'].items():
            logger.warning(f"  - {table}: {count} {reason}")
    else:
        logger.info("All data quality checks passed")

    return summary


def _line_number(index):
    # Data rows start on line 2, after the header
    return int(index) + 2
