from voicebatch.infrastructure.workers.queue_worker import QueueWorker, RetryWorker

__all__ = ["QueueWorker", "RetryWorker"]
