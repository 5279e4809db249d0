"""Services package: expense database and receipt storage backends."""
