"""S3 service broker: provisions buckets and scoped IAM credentials."""

__version__ = "0.1.0"
