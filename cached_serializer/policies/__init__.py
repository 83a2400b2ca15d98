"""
Attribute policy package.

Defines the per-attribute caching rule and the ordered registry that owns
the rules of one serializer.

Modules of interest:
- models: AttributePolicy, its declaration kinds and the merge rule.
- registry: PolicyRegistry, ordered registration and resolution.

Redeclaring an attribute merges rather than replaces: recompute predicates
accumulate, while the compute function and expiry of the latest
declaration win.
"""

from .models import AttributePolicy, PolicyKind, always_recompute
from .registry import PolicyRegistry

__all__ = ["AttributePolicy", "PolicyKind", "PolicyRegistry", "always_recompute"]
