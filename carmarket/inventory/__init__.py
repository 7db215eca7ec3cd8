"""Inventory search.

The inventory layer validates raw query-string parameters into a strict `InventoryQuery`, which is
then turned into parameterized SQL by `carmarket.sql.builder` and executed by
`carmarket.inventory.search`.
"""
