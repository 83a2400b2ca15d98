"""
Caching package.

Key derivation and the backends attribute values are cached in. Keys are
deterministic per (subject type, subject identity, attribute) so that
eviction hooks can address an entry without the subject instance.
"""
