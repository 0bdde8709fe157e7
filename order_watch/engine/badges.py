"""
Badge Counters

unread_count follows the feed (records with read=False).
attention_count is the tab badge: it only grows with attention-worthy
transitions and only resets when the user visits that tab.
"""

from order_watch.schemas import NotificationRecord


class BadgeCounter:
    def __init__(self):
        self.unread_count = 0
        self.attention_count = 0

    def recompute(self, feed: list[NotificationRecord]) -> int:
        self.unread_count = sum(1 for record in feed if not record.read)
        return self.unread_count

    def add_attention(self, count: int) -> None:
        if count > 0:
            self.attention_count += count

    def clear_attention(self) -> None:
        self.attention_count = 0

    def reset(self) -> None:
        self.unread_count = 0
        self.attention_count = 0
