"""
Demo catalog served for the local demo connection (localhost / root).

When the gateway is unreachable, the local demo connection still gets a
realistic shop schema and sample rows so the builder can be walked through
end to end.
"""

from typing import Any, Dict, List, Tuple

from ..domain.schema_nodes import ColumnNode, ForeignKey, SchemaNode, TableNode


def _pk(name: str, type_: str = "INTEGER") -> ColumnNode:
    return ColumnNode(name=name, type=type_, nullable=False, is_primary_key=True)


def _fk(name: str, references: str) -> ColumnNode:
    return ColumnNode(name=name, type="INTEGER", nullable=False, is_foreign_key=True, references=references)


def _col(name: str, type_: str, nullable: bool = False) -> ColumnNode:
    return ColumnNode(name=name, type=type_, nullable=nullable)


def demo_schemas() -> List[SchemaNode]:
    """Return a fresh copy of the demo schemas (public and sales)."""
    customers = TableNode(
        name="customers",
        schema_name="public",
        columns=[
            _pk("id"),
            _col("name", "VARCHAR"),
            _col("email", "VARCHAR", nullable=True),
            _col("created_at", "TIMESTAMP", nullable=True),
        ],
        primary_key=["id"],
    )
    orders = TableNode(
        name="orders",
        schema_name="public",
        columns=[
            _pk("id"),
            _fk("customer_id", "customers.id"),
            _col("total", "DECIMAL"),
            _col("status", "VARCHAR"),
            _col("created_at", "TIMESTAMP", nullable=True),
        ],
        primary_key=["id"],
        foreign_keys=[ForeignKey(columns=["customer_id"], referenced_table="customers", referenced_columns=["id"])],
    )
    products = TableNode(
        name="products",
        schema_name="sales",
        columns=[
            _pk("id"),
            _col("name", "VARCHAR"),
            _col("price", "DECIMAL"),
            _col("category", "VARCHAR", nullable=True),
        ],
        primary_key=["id"],
    )
    order_items = TableNode(
        name="order_items",
        schema_name="sales",
        columns=[
            _pk("id"),
            _fk("order_id", "orders.id"),
            _fk("product_id", "products.id"),
            _col("quantity", "INTEGER"),
            _col("price", "DECIMAL"),
        ],
        primary_key=["id"],
        foreign_keys=[
            ForeignKey(columns=["order_id"], referenced_table="orders", referenced_columns=["id"]),
            ForeignKey(columns=["product_id"], referenced_table="products", referenced_columns=["id"]),
        ],
    )
    return [
        SchemaNode(name="public", tables=[customers, orders]),
        SchemaNode(name="sales", tables=[products, order_items]),
    ]


def demo_table_names() -> List[str]:
    return [table.name for schema in demo_schemas() for table in schema.tables]


_DEMO_ROWS: Dict[str, Tuple[List[str], List[List[Any]]]] = {
    "customers": (
        ["id", "name", "email", "created_at"],
        [
            [1, "John Doe", "john@example.com", "2023-01-15 09:30:00"],
            [2, "Jane Smith", "jane@example.com", "2023-02-20 14:45:00"],
            [3, "Bob Johnson", "bob@example.com", "2023-03-05 11:15:00"],
            [4, "Alice Brown", "alice@example.com", "2023-04-10 16:20:00"],
            [5, "Charlie Wilson", "charlie@example.com", "2023-05-25 10:00:00"],
        ],
    ),
    "orders": (
        ["id", "customer_id", "total", "status", "created_at"],
        [
            [101, 1, 150.50, "completed", "2023-02-01 10:30:00"],
            [102, 2, 75.25, "pending", "2023-03-15 09:15:00"],
            [103, 1, 220.00, "completed", "2023-04-20 14:40:00"],
            [104, 3, 45.99, "cancelled", "2023-05-05 16:10:00"],
            [105, 2, 180.75, "completed", "2023-06-10 11:55:00"],
        ],
    ),
    "products": (
        ["id", "name", "price", "category"],
        [
            [201, "Laptop", 999.99, "Electronics"],
            [202, "Smartphone", 699.99, "Electronics"],
            [203, "Coffee Maker", 129.50, "Appliances"],
            [204, "Running Shoes", 89.95, "Apparel"],
            [205, "Desk Chair", 199.99, "Furniture"],
        ],
    ),
    "order_items": (
        ["id", "order_id", "product_id", "quantity", "price"],
        [
            [301, 101, 201, 1, 999.99],
            [302, 101, 203, 1, 129.50],
            [303, 102, 202, 1, 699.99],
            [304, 103, 204, 2, 179.90],
            [305, 103, 205, 1, 199.99],
        ],
    ),
}

# Rows served for tables outside the demo catalog
_GENERIC_ROWS: Tuple[List[str], List[List[Any]]] = (
    ["id", "name", "value"],
    [
        [1, "Row 1", 10.5],
        [2, "Row 2", 20.0],
        [3, "Row 3", 30.75],
        [4, "Row 4", 15.25],
        [5, "Row 5", 50.0],
    ],
)


def demo_records(table_name: str) -> List[Dict[str, Any]]:
    """Sample rows of a demo table as records (column -> value)."""
    columns, rows = _DEMO_ROWS.get(table_name, _GENERIC_ROWS)
    return [dict(zip(columns, row)) for row in rows]
