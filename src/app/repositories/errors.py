class DuplicateEntryError(Exception):
    """A write collided with a unique index (usually a concurrent insert)"""
