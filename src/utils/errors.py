"""Error handling utilities."""


class FieldQueueError(Exception):
    """Base exception for the EXIF field queue."""
    pass


class ConfigurationError(FieldQueueError):
    """Invalid or missing configuration."""
    pass


class SchemaMutationError(FieldQueueError):
    """Schema mutator failed to create, alter or drop a field."""
    pass


class FieldCreationError(FieldQueueError):
    """Field creation task failed."""
    pass


class FieldRemovalError(FieldQueueError):
    """Field removal task failed."""

    def __init__(self, message: str, record_type_id: str = "", field_name: str = ""):
        super().__init__(message)
        self.record_type_id = record_type_id
        self.field_name = field_name


class QueueBackendError(FieldQueueError):
    """Queue or state store operation error."""
    pass


class SupabaseError(QueueBackendError):
    """Supabase operation error."""
    pass
