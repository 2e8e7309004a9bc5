"""
Main pipeline orchestration for the pizza sales pipeline.
"""
import logging
import argparse
import time
import traceback
from datetime import datetime
from config import Config
from db.engine import create_db_engine, init_db
from db.models import Base
from ingestion.loader import load_snapshot
from transformation.joins import check_for_missing_relationships
from transformation.calculations import run_all_reports
from transformation.quality import summarize_violations, require_value
from loading.writer import (
    load_snapshot_to_store,
    load_reports_to_store,
    export_results_to_csv,
    report_to_frame
)

logger = logging.getLogger(__name__)

# Reports that have no value when there are no eligible order lines
VALUE_REQUIRED_REPORTS = [
    'most_popular_size',
    'average_order_value',
    'average_revenue_per_order',
    'top_revenue_day_of_week',
    'top_revenue_type_size_combo'
]


def run_pipeline(config_file='config.ini', quality_check=None, load_store=None,
                 export_csv=False, input_dir=None):
    start_time = time.time()
    statistics = {
        'start_time': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'status': 'failed',
        'stages': {},
    }

    try:
        logger.info("Starting pizza sales pipeline")

        config = Config(config_file)

        # Override config settings if provided
        if quality_check is not None:
            config.config['PIPELINE']['quality_check'] = str(quality_check).lower()

        if load_store is not None:
            config.config['PIPELINE']['load_store'] = str(load_store).lower()

        if input_dir is not None:
            config.config['PATHS']['input_dir'] = input_dir

        run_quality_check = config.is_quality_check_enabled()
        run_store_load = config.is_store_load_enabled()

        logger.info(f"Pipeline mode: quality_check={run_quality_check}, load_store={run_store_load}")

        # ---- Data Ingestion
        stage_start = time.time()
        snapshot = load_snapshot(config)

        statistics['stages']['ingestion'] = {
            'duration': time.time() - stage_start,
            'rows_processed': {
                table: len(df) for table, df in snapshot.tables().items()
            },
            'violations': len(snapshot.violations)
        }

        # ---- Data Validation & Quality Checks
        if run_quality_check:
            stage_start = time.time()

            summary = summarize_violations(list(snapshot.violations))
            relationships = check_for_missing_relationships(snapshot)

            statistics['stages']['quality_check'] = {
                'duration': time.time() - stage_start,
                'issues_found': summary['total'],
                'load_errors': len(snapshot.load_errors),
                'integrity_errors': len(snapshot.integrity_errors),
                'orders_with_no_items': relationships['orders_with_no_items_count'],
                'unused_pizzas': relationships['unused_pizzas_count']
            }

        # ---- Reports
        stage_start = time.time()

        top_n, least_n = config.get_report_limits()
        reports = run_all_reports(snapshot, top_n=top_n, least_n=least_n)

        if config.fail_on_empty():
            for name in VALUE_REQUIRED_REPORTS:
                require_value(name, reports[name])

        statistics['stages']['transformation'] = {
            'duration': time.time() - stage_start,
            'reports_generated': len(reports)
        }
        statistics['reports'] = reports

        # ---- Data Loading
        if run_store_load:
            stage_start = time.time()

            engine = create_db_engine(config)
            init_db(engine, Base)
            load_snapshot_to_store(engine, snapshot)
            report_tables = load_reports_to_store(engine, reports)

            statistics['stages']['loading'] = {
                'duration': time.time() - stage_start,
                'report_tables': len(report_tables)
            }

        # Export results to CSV if requested
        if export_csv:
            exported_files = export_results_to_csv(
                reports,
                config.get_output_path(),
                snapshot.violations
            )
            statistics['stages']['export'] = {
                'files_exported': len(exported_files),
                'file_paths': exported_files
            }

        statistics['status'] = 'success'
        logger.info("Pizza sales pipeline completed successfully")

    except Exception as e:
        logger.error(f"Pipeline execution failed: {str(e)}")
        logger.error(traceback.format_exc())
        statistics['status'] = 'failed'
        statistics['error'] = str(e)

    # Calculate total duration
    statistics['duration'] = time.time() - start_time

    return statistics


def main():
    """Command line entry point."""
    parser = argparse.ArgumentParser(description='Pizza Sales Pipeline')
    parser.add_argument('--config', default='config.ini', help='Path to configuration file')
    parser.add_argument('--input-dir', help='Directory holding the four source CSV files')
    parser.add_argument('--quality-check', action='store_true', help='Run data quality checks')
    parser.add_argument('--no-quality-check', action='store_true', help='Skip data quality checks')
    parser.add_argument('--load-store', action='store_true', help='Write snapshot and reports to the database')
    parser.add_argument('--export-csv', action='store_true', help='Export reports to CSV files')

    args = parser.parse_args()

    # Determine quality check mode
    quality_check = None
    if args.quality_check:
        quality_check = True
    elif args.no_quality_check:
        quality_check = False

    results = run_pipeline(
        config_file=args.config,
        quality_check=quality_check,
        load_store=True if args.load_store else None,
        export_csv=args.export_csv,
        input_dir=args.input_dir
    )

    # Print summary
    print("\nPipeline Execution Summary:")
    print(f"Status: {results['status']}")
    print(f"Duration: {results['duration']:.2f} seconds")

    if results['status'] == 'failed' and 'error' in results:
        print(f"Error: {results['error']}")

    for stage, stats in results.get('stages', {}).items():
        print(f"\n{stage.capitalize()} stage:")
        for key, value in stats.items():
            if key != 'rows_processed' and key != 'file_paths':
                print(f"  {key}: {value}")

    for name, result in results.get('reports', {}).items():
        print(f"\n{name}:")
        print(report_to_frame(name, result).to_string(index=False))


if __name__ == "__main__":
    main()
