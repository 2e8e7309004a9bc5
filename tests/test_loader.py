"""Tests for source file loading, validation and size normalization."""

import datetime

import pandas as pd
import pytest

from ingestion.loader import (
    load_snapshot,
    load_snapshot_from_paths,
    read_source,
    validate_order_details,
    validate_orders,
    validate_pizza_types,
    validate_pizzas,
)
from transformation.quality import (
    DUPLICATE_KEY,
    INVALID_VALUE,
    MALFORMED_ROW,
    MISSING_COLUMN,
    MISSING_VALUE,
    OUT_OF_RANGE,
    VALID_SIZES,
    LoadValidationError,
)


def _frame(csv_text, tmp_path, table_name='t'):
    path = tmp_path / f"{table_name}.csv"
    path.write_text(csv_text)
    df, _ = read_source(str(path), table_name)
    return df


class TestReadSource:
    """Tests for reading raw CSV files."""

    def test_strips_whitespace_and_blanks_become_missing(self, tmp_path) -> None:
        """Test values are stripped and empty cells read as missing."""
        df = _frame("order_id , date,time\n 1 , ,18:30\n", tmp_path)

        assert list(df.columns) == ['order_id', 'date', 'time']
        assert df.loc[0, 'order_id'] == '1'
        assert pd.isna(df.loc[0, 'date'])

    def test_rows_with_extra_fields_are_reported(self, tmp_path) -> None:
        """Test a row with too many fields is skipped and reported."""
        path = tmp_path / "orders.csv"
        path.write_text("order_id,date,time\n1,2024-01-05,18:30\n2,2024-01-05,12:00,extra\n")

        df, violations = read_source(str(path), 'orders')

        assert len(df) == 1
        assert len(violations) == 1
        assert violations[0].reason == MALFORMED_ROW
        assert violations[0].value == '2,2024-01-05,12:00,extra'

    def test_missing_file_raises(self, tmp_path) -> None:
        """Test a missing source file is a hard failure."""
        with pytest.raises(FileNotFoundError):
            read_source(str(tmp_path / "nope.csv"), 'orders')


class TestValidateOrders:
    """Tests for order validation."""

    def test_parses_dates_and_both_time_formats(self, tmp_path) -> None:
        """Test HH:MM:SS and HH:MM times are both accepted."""
        df = _frame("order_id,date,time\n1,2024-01-05,18:30:15\n2,2024-01-06,09:05\n", tmp_path)

        clean, violations = validate_orders(df)

        assert violations == []
        assert clean['time'].tolist() == [datetime.time(18, 30, 15), datetime.time(9, 5)]
        assert clean['date'].dt.date.tolist() == [datetime.date(2024, 1, 5), datetime.date(2024, 1, 6)]

    def test_missing_and_invalid_values_are_collected(self, tmp_path) -> None:
        """Test bad rows are dropped and reported without stopping the load."""
        df = _frame(
            "order_id,date,time\n"
            "1,,18:30\n"
            "2,2024-13-45,18:30\n"
            "3,2024-01-05,25:99\n"
            "4,2024-01-05,11:00\n",
            tmp_path
        )

        clean, violations = validate_orders(df)

        assert clean['order_id'].tolist() == ['4']
        reasons = [(v.column, v.reason) for v in violations]
        assert reasons == [('date', MISSING_VALUE), ('date', INVALID_VALUE), ('time', INVALID_VALUE)]
        assert violations[0].row_number == 2

    def test_duplicate_order_ids_keep_first(self, tmp_path) -> None:
        """Test duplicate keys keep the first row and are reported."""
        df = _frame("order_id,date,time\n1,2024-01-05,18:30\n1,2024-02-05,10:00\n", tmp_path)

        clean, violations = validate_orders(df)

        assert len(clean) == 1
        assert clean.loc[0, 'date'] == pd.Timestamp('2024-01-05')
        assert violations[0].reason == DUPLICATE_KEY

    def test_missing_column_raises(self, tmp_path) -> None:
        """Test a file without a required column cannot be loaded."""
        df = _frame("order_id,date\n1,2024-01-05\n", tmp_path)

        with pytest.raises(LoadValidationError) as exc_info:
            validate_orders(df)

        assert exc_info.value.reason == MISSING_COLUMN
        assert exc_info.value.column == 'time'


class TestValidateOrderDetails:
    """Tests for order line validation."""

    @pytest.mark.parametrize("quantity,reason", [
        ("0", OUT_OF_RANGE),
        ("-2", OUT_OF_RANGE),
        ("1.5", OUT_OF_RANGE),
        ("two", INVALID_VALUE),
        ("", MISSING_VALUE),
    ])
    def test_bad_quantities_are_rejected(self, tmp_path, quantity, reason) -> None:
        """Test quantity must be a positive integer."""
        df = _frame(f"order_details_id,order_id,pizza_id,quantity\n1,1,p1,{quantity}\n", tmp_path)

        clean, violations = validate_order_details(df)

        assert clean.empty
        assert [v.reason for v in violations] == [reason]

    def test_generates_line_ids_when_absent(self, tmp_path) -> None:
        """Test a synthetic order_details_id is numbered from 1."""
        df = _frame("order_id,pizza_id,quantity\n1,p1,2\n1,p2,1\n", tmp_path)

        clean, violations = validate_order_details(df)

        assert violations == []
        assert clean['order_details_id'].tolist() == ['1', '2']
        assert clean['quantity'].tolist() == [2, 1]

    def test_missing_pizza_reference_is_reported(self, tmp_path) -> None:
        """Test a line without a pizza reference is rejected."""
        df = _frame("order_details_id,order_id,pizza_id,quantity\n1,1,,2\n", tmp_path)

        clean, violations = validate_order_details(df)

        assert clean.empty
        assert (violations[0].column, violations[0].reason) == ('pizza_id', MISSING_VALUE)


class TestValidatePizzas:
    """Tests for pizza validation and size normalization."""

    @pytest.mark.parametrize("raw_size", ["l", "L", "L ", " l"])
    def test_sizes_normalize_to_upper_case(self, tmp_path, raw_size) -> None:
        """Test every spelling of a size is stored upper case."""
        df = _frame(f"pizza_id,pizza_type_id,size,price\np1,t1,{raw_size},10\n", tmp_path)

        clean, violations = validate_pizzas(df)

        assert violations == []
        assert clean.loc[0, 'size'] == 'L'

    def test_unknown_size_is_rejected(self, tmp_path) -> None:
        """Test a size outside the closed set is a violation."""
        df = _frame("pizza_id,pizza_type_id,size,price\np1,t1,huge,10\np2,t1,xxl,25\n", tmp_path)

        clean, violations = validate_pizzas(df)

        assert clean['size'].tolist() == ['XXL']
        assert (violations[0].column, violations[0].value) == ('size', 'huge')

    def test_negative_and_unparseable_prices(self, tmp_path) -> None:
        """Test price must be a non-negative number."""
        df = _frame(
            "pizza_id,pizza_type_id,size,price\np1,t1,S,-1\np2,t1,M,abc\np3,t1,L,0\n",
            tmp_path
        )

        clean, violations = validate_pizzas(df)

        assert clean['pizza_id'].tolist() == ['p3']
        assert [v.reason for v in violations] == [INVALID_VALUE, OUT_OF_RANGE]

    def test_missing_price_is_not_filled_in(self, tmp_path) -> None:
        """Test a missing price is reported instead of treated as zero."""
        df = _frame("pizza_id,pizza_type_id,size,price\np1,t1,S,\n", tmp_path)

        clean, violations = validate_pizzas(df)

        assert clean.empty
        assert (violations[0].column, violations[0].reason) == ('price', MISSING_VALUE)


class TestValidatePizzaTypes:
    """Tests for pizza type validation."""

    def test_ingredients_split_into_tuple(self, tmp_path) -> None:
        """Test ingredients become a tuple of stripped names."""
        df = _frame(
            'pizza_type_id,name,category,ingredients\n'
            't1,Margherita,Classic,"Tomatoes,  Basil ,Mozzarella"\n'
            't2,Plain,Classic,\n',
            tmp_path
        )

        clean, violations = validate_pizza_types(df)

        assert violations == []
        assert clean.loc[0, 'ingredients'] == ('Tomatoes', 'Basil', 'Mozzarella')
        assert clean.loc[1, 'ingredients'] == ()

    def test_missing_category_is_reported(self, tmp_path) -> None:
        """Test a pizza type without a category is rejected."""
        df = _frame("pizza_type_id,name,category,ingredients\nt1,Margherita,,Tomatoes\n", tmp_path)

        clean, violations = validate_pizza_types(df)

        assert clean.empty
        assert violations[0].column == 'category'


class TestLoadSnapshot:
    """Tests for loading the full snapshot."""

    def test_sample_dataset_loads_cleanly(self, snapshot) -> None:
        """Test the sample files produce no violations."""
        assert snapshot.violations == ()
        assert {name: len(df) for name, df in snapshot.tables().items()} == {
            'orders': 5,
            'order_details': 7,
            'pizzas': 5,
            'pizza_types': 4,
        }

    def test_every_size_in_closed_set(self, snapshot) -> None:
        """Test all stored sizes belong to the valid set."""
        assert set(snapshot.pizzas['size']) <= set(VALID_SIZES)
        assert snapshot.pizzas.set_index('pizza_id').loc['margherita_l', 'size'] == 'L'

    def test_bad_rows_do_not_abort_the_load(self, write_sources) -> None:
        """Test violations are returned alongside the clean rows."""
        paths = write_sources(
            pizzas="pizza_id,pizza_type_id,size,price\nbbq_ckn_l,bbq_ckn,L,20.75\nbroken,bbq_ckn,L,-3\n"
        )

        snapshot = load_snapshot_from_paths(paths)

        assert snapshot.pizzas['pizza_id'].tolist() == ['bbq_ckn_l']
        assert len(snapshot.load_errors) == 1
        # Lines for pizzas that were rejected become integrity errors
        assert len(snapshot.integrity_errors) == 5
        assert snapshot.order_details['pizza_id'].unique().tolist() == ['bbq_ckn_l']

    def test_load_snapshot_uses_configured_paths(self, sample_paths, tmp_path) -> None:
        """Test the configuration decides where the files are read from."""
        from config import Config

        config = Config(str(tmp_path / "missing.ini"))
        config.config['PATHS']['input_dir'] = str(tmp_path)

        snapshot = load_snapshot(config)

        assert len(snapshot.orders) == 5
