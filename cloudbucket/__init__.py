"""Provider-agnostic object storage client.

One async operation set backed interchangeably by Amazon S3 and
Google Cloud Storage.
"""

__version__ = "0.1.0"
