"""
Document processing pipeline.

Stage workers, shared state machine, deterministic ids, chunking policy
and the runner that drives workers from the bus.
"""
