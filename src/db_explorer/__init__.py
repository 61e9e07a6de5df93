"""Generic CRUD API over the tables of a relational database."""

# Note: the application is built through db_explorer.server.create_app; importing
# the package itself does not touch the database.

__all__ = [
    "config",
    "explorer",
    "server",
]
