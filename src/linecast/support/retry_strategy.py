from linecast.support.mixins import CommonEqualityMixin


class RetryStrategy:
    """ determines how long to wait before an operation is retried. """
    def __call__(self):
        return 0


class FixedRetryStrategy(RetryStrategy, CommonEqualityMixin):
    """
    Waits the same interval between every attempt, however many attempts have failed.
    The interval never shrinks, so a peer that stays down is polled at a steady rate.
    """

    def __init__(self, retry_period):
        """
        :param retry_period: The retry period in seconds.
        """
        if retry_period <= 0:
            raise ValueError("retry period must be positive: %s" % retry_period)
        self.retry_period = retry_period

    def __call__(self):
        """return the length of time to wait before the next attempt """
        return self.retry_period


# the pause between reconnection attempts
default_retry_period = 0.5
