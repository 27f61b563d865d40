"""Service lifecycle engine.

Services are ordered into buckets by ``ServiceQueue``; for every bucket the
controller composes short-circuit task expressions (``Or``/``And``/``Not``)
over ``ProcessTask`` leaves and hands them to ``Scheduler``, which drives
them to completion from a single polling thread. Concurrency comes from the
spawned service scripts themselves, not from control threads.
"""
