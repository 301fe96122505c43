"""
Advisory timeout bands for polling assertions, in seconds.

Nothing enforces these; test authors pick the band that matches the
operation they are waiting on.
"""


class Timeouts:
    """Named timeout bands"""

    QUICK = 5.0          # cache refreshes, simple status flips
    STANDARD = 30.0      # most asynchronous business effects
    LONG_RUNNING = 60.0  # batch jobs, document processing
