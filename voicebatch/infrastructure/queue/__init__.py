from voicebatch.infrastructure.queue.in_memory_queue import InMemoryQueue
from voicebatch.infrastructure.queue.queue_manager import InMemoryQueueManager

__all__ = ["InMemoryQueue", "InMemoryQueueManager"]
