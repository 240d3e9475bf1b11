"""
Domain layer package housing the provider-independent bucket and object values.
"""

from .models import Bucket, StorageObject

__all__ = ["Bucket", "StorageObject"]
