"""
Adapter-specific exception classes.
"""
import pymongo.errors


class DatabaseError(Exception):
    """Base class for all adapter errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining the MongoDB connection.
    """


class QueryError(DatabaseError):
    """Error in query translation or execution.
    """


class ValidationError(DatabaseError, ValueError):
    """Error in configuration or option validation.
    """


class NotFoundError(DatabaseError):
    """No document matched the query of an operation that requires a target.
    """


DbConnectionError = (
    pymongo.errors.ConnectionFailure,
    pymongo.errors.ServerSelectionTimeoutError,
    pymongo.errors.ConfigurationError,
    ConnectionFailure,
    )

IntegrityError = (
    pymongo.errors.DuplicateKeyError,
    )

OperationalError = (
    pymongo.errors.OperationFailure,
    pymongo.errors.WriteError,
    )
