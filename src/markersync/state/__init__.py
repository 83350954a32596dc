"""State/store layer.

The stage buffers caller intents, the store holds the committed state that
is published every tick, and the policy module decides how one turns into
the other.
"""
