"""
Read-only snapshot of the loaded pizza sales tables.
"""
from dataclasses import dataclass, field
from functools import cached_property

import pandas as pd

from transformation.joins import join_order_lines
from transformation.quality import ReferentialIntegrityError, LoadValidationError

TABLE_NAMES = ('orders', 'order_details', 'pizzas', 'pizza_types')


@dataclass(frozen=True, eq=False)
class Snapshot:
    """
    The four clean tables plus every violation found while loading them.

    Built once per run and shared by all reports, which must treat the
    frames as read-only.
    """

    orders: pd.DataFrame
    order_details: pd.DataFrame
    pizzas: pd.DataFrame
    pizza_types: pd.DataFrame
    violations: tuple = field(default=())

    @cached_property
    def lines(self):
        """Order lines joined with their order, pizza and pizza type."""
        return join_order_lines(self)

    def tables(self):
        return {name: getattr(self, name) for name in TABLE_NAMES}

    @property
    def load_errors(self):
        return [v for v in self.violations if isinstance(v, LoadValidationError)]

    @property
    def integrity_errors(self):
        return [v for v in self.violations if isinstance(v, ReferentialIntegrityError)]
