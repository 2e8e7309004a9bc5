"""
Data loading components for the pizza sales pipeline.
"""
import os
import logging
import traceback
import pandas as pd

from db.models import Base
from transformation.quality import violations_to_frame

logger = logging.getLogger(__name__)

REPORT_TABLE_PREFIX = 'report_'


def report_to_frame(name, result):
    """
    Turn any report result into a DataFrame.

    Tabular reports pass through, single-row reports become one row, lists
    become one column and scalars (including None) a single cell.
    """
    if isinstance(result, pd.DataFrame):
        return result
    if isinstance(result, dict):
        return pd.DataFrame([result])
    if isinstance(result, list):
        return pd.DataFrame({name: result})
    return pd.DataFrame({name: [result]})


def load_snapshot_to_store(engine, snapshot):
    """
    Replace the contents of the source tables with the clean snapshot.

    Tables are cleared children first and filled parents first so foreign
    keys hold at every step. Clearing and filling share one transaction, so
    a failed insert leaves the previous snapshot in place.
    """
    try:
        logger.info("Loading snapshot into the database")

        tables = Base.metadata.sorted_tables
        with engine.begin() as conn:
            for table in reversed(tables):
                conn.execute(table.delete())
            logger.info(f"Cleared {len(tables)} tables")

            for table in tables:
                df = _prepare_for_store(table.name, getattr(snapshot, table.name))
                _load_table(conn, df, table.name, if_exists='append')

        logger.info("Snapshot loading completed successfully")
    except Exception as e:
        logger.error(f"Error loading snapshot: {str(e)}")
        logger.error(traceback.format_exc())
        raise


def load_reports_to_store(engine, reports):
    """
    Write each report to its own ``report_<name>`` table, replacing old results.

    A report with no rows still replaces its table, leaving it empty.

    Returns:
        list: names of the tables written
    """
    try:
        logger.info(f"Loading {len(reports)} reports into the database")
        written = []
        with engine.begin() as conn:
            for name, result in reports.items():
                table_name = f"{REPORT_TABLE_PREFIX}{name}"
                _load_table(conn, report_to_frame(name, result), table_name,
                            if_exists='replace', keep_empty=True)
                written.append(table_name)
        return written
    except Exception as e:
        logger.error(f"Error loading reports: {str(e)}")
        logger.error(traceback.format_exc())
        raise


def _load_table(conn, df, table_name, if_exists, keep_empty=False):
    if df is None or (len(df) == 0 and not keep_empty):
        logger.warning(f"No data to load for table {table_name}")
        return False

    df.to_sql(table_name, conn, if_exists=if_exists, index=False)
    logger.info(f"Successfully loaded {len(df)} rows to {table_name}")
    return True


def _prepare_for_store(table_name, df):
    # The snapshot keeps richer types than the database columns
    if table_name == 'orders':
        return df.assign(date=df['date'].dt.date)
    if table_name == 'pizza_types':
        return df.assign(ingredients=df['ingredients'].map(', '.join))
    return df


def export_results_to_csv(reports, output_dir, violations=()):
    """
    Export reports, and the violations found while loading, to CSV files.

    Returns:
        dict: name -> written file path
    """
    try:
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)

        exported_files = {}

        frames = {name: report_to_frame(name, result) for name, result in reports.items()}
        if violations:
            frames['violations'] = violations_to_frame(list(violations))

        for name, df in frames.items():
            if df is not None and len(df) > 0:
                file_path = os.path.join(output_dir, f"{name}.csv")
                df.to_csv(file_path, index=False)
                exported_files[name] = file_path
                logger.info(f"Exported {len(df)} rows to {file_path}")

        return exported_files
    except Exception as e:
        logger.error(f"Error exporting results to CSV: {str(e)}")
        logger.error(traceback.format_exc())
        raise
