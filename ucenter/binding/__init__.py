"""
Bindings from third-party identifiers to accounts.

Used in "mixed" mode, where accounts live in the remote UCenter service but
the gateway keeps its own record of which phone number, WeChat union id and
so on belongs to which uid.
"""

from .store import BindingStore, DatabaseBindingStore, BINDING_TYPES, \
    binding_key
