"""
Value types shared by the snitch engine and its front-ends.
"""

from .producer_record import ProducerRecord, derive_label  # noqa: F401
from .transition_event import TransitionEvent, TransitionKind  # noqa: F401
