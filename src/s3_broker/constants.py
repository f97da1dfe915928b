"""Constants for the S3 Service Broker."""

# Broker identity
BROKER_NAME = "AWS S3 Service Broker"
TAG_BROKER_NAME = "s3 broker"
CONTROLLER = "s3-broker"

# Tag keys
TAG_OWNER = "Owner"
TAG_OWNER_VALUE = "Cloud Foundry"
TAG_BROKER = "broker"
TAG_ENVIRONMENT = "environment"
TAG_SERVICE_NAME = "Service offering name"
TAG_PLAN_NAME = "Service plan name"
TAG_INSTANCE_GUID = "Instance GUID"
TAG_ORGANIZATION_GUID = "Organization GUID"
TAG_ORGANIZATION_NAME = "Organization name"
TAG_SPACE_GUID = "Space GUID"
TAG_SPACE_NAME = "Space name"

# Timestamp tags that always differ between runs
TIMESTAMP_TAGS = frozenset({"Created at", "Updated at"})

# RFC 822 with numeric zone
TAG_TIME_FORMAT = "%d %b %y %H:%M %z"

# Object ownership. ObjectWriter keeps ACLs working; S3 defaults new buckets
# to BucketOwnerEnforced since April 2023.
OBJECT_OWNERSHIP_OBJECT_WRITER = "ObjectWriter"
OBJECT_OWNERSHIP_BUCKET_OWNER_PREFERRED = "BucketOwnerPreferred"
OBJECT_OWNERSHIP_BUCKET_OWNER_ENFORCED = "BucketOwnerEnforced"
DEFAULT_OBJECT_OWNERSHIP = OBJECT_OWNERSHIP_OBJECT_WRITER
OBJECT_OWNERSHIP_MODES = frozenset({
    OBJECT_OWNERSHIP_OBJECT_WRITER,
    OBJECT_OWNERSHIP_BUCKET_OWNER_PREFERRED,
    OBJECT_OWNERSHIP_BUCKET_OWNER_ENFORCED,
})

# Bucket policy propagation: 1 attempt + 10 retries
POLICY_APPLY_MAX_ATTEMPTS = 11
DEFAULT_POLICY_RETRY_DELAY = 1.0

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_OBJECTS_BATCH_SIZE = 1000

# Regions
DEFAULT_REGION = "us-east-1"
LEGACY_EU_LOCATION = "EU"
LEGACY_EU_REGION = "eu-west-1"

# Providers
PROVIDER_AWS = "aws"
PROVIDER_MINIO = "minio"

# Credential URI scheme
URI_SCHEME = "s3"

# Backend error codes
ACCESS_DENIED_CODES = frozenset({"AccessDenied", "AccessDeniedException"})
MISSING_RESOURCE_CODES = frozenset({"NoSuchBucket", "NoSuchEntity", "NoSuchKey", "404", "NotFound"})
ALREADY_EXISTS_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists", "EntityAlreadyExists"})

# Log levels accepted in the config file
LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "FATAL": 50,
}

# Operations
OP_PROVISION = "provision"
OP_UPDATE = "update"
OP_DEPROVISION = "deprovision"
OP_BIND = "bind"
OP_UNBIND = "unbind"
OP_LAST_OPERATION = "last_operation"

# HTTP
REQUEST_IDENTITY_HEADER = "X-Broker-API-Request-Identity"
DEFAULT_PORT = 3000
