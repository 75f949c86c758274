"""
Event publishing for registry mutations
Best-effort notifications emitted after a call commits
"""

from typing import Any, Dict, List, Optional, Tuple
import structlog

from .models import RegistryEvent

logger = structlog.get_logger(__name__)


class EventPublisher:
    """Delivers structured notifications (topic + payload) to observers"""

    def publish(self, topic: Tuple[str, str], payload: Dict[str, Any]) -> RegistryEvent:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):
    """Publishes events to the structured log"""

    def publish(self, topic: Tuple[str, str], payload: Dict[str, Any]) -> RegistryEvent:
        event = RegistryEvent(topic=topic, payload=payload)
        logger.info("Registry event", topic=list(topic), payload=payload)
        return event


class InMemoryEventPublisher(EventPublisher):
    """Keeps published events in memory for testing"""

    def __init__(self):
        self.events: List[RegistryEvent] = []

    def publish(self, topic: Tuple[str, str], payload: Dict[str, Any]) -> RegistryEvent:
        event = RegistryEvent(topic=topic, payload=payload)
        self.events.append(event)
        return event

    def last(self, name: Optional[str] = None) -> Optional[RegistryEvent]:
        """Most recent event, optionally filtered by the topic's second element"""
        for event in reversed(self.events):
            if name is None or event.topic[1] == name:
                return event
        return None
