class PipelineHealthError(Exception):
    """Raised when health for a single account cannot be computed."""


class DataAccessError(Exception):
    """Raised by a data source when account records cannot be read."""


class AccountNotFoundError(DataAccessError):
    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class OracleError(Exception):
    """Raised when the quality oracle cannot produce a score."""


class OracleResponseError(OracleError):
    """Raised when the oracle answers with output that cannot be parsed."""
