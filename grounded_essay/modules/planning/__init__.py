from .planner import OutlinePlanner, partition_word_count

__all__ = ['OutlinePlanner', 'partition_word_count']
