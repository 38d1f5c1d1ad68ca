"""
Scheduled task execution for time-delayed moderation actions.

- **mute_scheduler.py**: Lifts timed mutes when their duration runs out.
  Uses a min-heap keyed by run time, supports cancellation, and re-reads the
  case before acting so a deleted or renumbered case is handled correctly.
"""
