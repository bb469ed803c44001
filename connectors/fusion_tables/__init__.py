"""
Google Fusion Tables connector: tables, rows and columns as an entity tree.
"""

from connectors.fusion_tables.catalog import TableCatalog
from connectors.fusion_tables.connector import FusionTablesConnector
from connectors.fusion_tables.row import RemoteRow
from connectors.fusion_tables.statements import QuotingMode, StatementBuilder
from connectors.fusion_tables.table import RemoteTable, column_property

__all__ = [
    "FusionTablesConnector",
    "QuotingMode",
    "RemoteRow",
    "RemoteTable",
    "StatementBuilder",
    "TableCatalog",
    "column_property",
]
