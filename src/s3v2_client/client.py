from .buckets import _BucketOperations
from .objects import _ObjectOperations


class S3Client(_BucketOperations, _ObjectOperations):
    pass
