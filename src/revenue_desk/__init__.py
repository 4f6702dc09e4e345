"""revenue-desk — Turn distributor sales spreadsheets into revenue analytics."""

__version__ = "0.3.0"

FIELD_ROLES: list[str] = ["date", "amount", "distributor", "description"]
MANDATORY_ROLES: list[str] = ["date", "amount", "distributor"]
