"""Driver-side exceptions.

The accelerator itself never reports errors; these cover misuse of the
software driver and a hung handshake.
"""


class DriverTimeoutError(RuntimeError):
    """DONE was not observed within the configured number of polls."""

    def __init__(self, instance: int, polls: int):
        self.instance = instance
        self.polls = polls
        super().__init__(f"instance {instance}: DONE not set after {polls} polls")


class DigestFinalizedError(RuntimeError):
    """The context was used after ``final()`` without a new ``init()``."""
