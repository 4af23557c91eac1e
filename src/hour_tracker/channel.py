"""In-process broadcast channels.

A channel fans every published message out to all handlers subscribed at the
moment of publishing. Publishers and subscribers only share the channel name.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import DeliveryError

log = logging.getLogger(__name__)

REFRESH_CHANNEL = "HourTrackerMessageChannel"

Handler = Callable[[Any], None]


class Subscription:
    def __init__(self, channel: Channel, handler: Handler) -> None:
        self.channel = channel
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.channel._remove(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class Channel:
    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: Handler) -> Subscription:
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        log.debug("Subscribed %r to %s", handler, self.name)
        return subscription

    def publish(self, message: Any) -> int:
        """Deliver ``message`` to every active subscriber.

        Returns the number of handlers that received it. If any handler raises,
        the others still run and a DeliveryError is raised afterwards.
        """
        errors: list[BaseException] = []
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.handler(message)
            except Exception as exc:
                log.exception("Subscriber %r of %s failed", subscription.handler, self.name)
                errors.append(exc)
            else:
                delivered += 1
        log.debug("Published %r on %s to %d subscriber(s)", message, self.name, delivered)
        if errors:
            raise DeliveryError(self.name, errors) from errors[0]
        return delivered

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return
        log.debug("Unsubscribed %r from %s", subscription.handler, self.name)


class MessageBus:
    def __init__(self) -> None:
        self._channels: dict[str, Channel] = {}

    def channel(self, name: str) -> Channel:
        channel = self._channels.get(name)
        if channel is None:
            channel = Channel(name)
            self._channels[name] = channel
        return channel

    def publish(self, name: str, message: Any) -> int:
        return self.channel(name).publish(message)

    def subscribe(self, name: str, handler: Handler) -> Subscription:
        return self.channel(name).subscribe(handler)
