"""
Persistence core: schema description, dirty tracking, statement synthesis,
relation resolution and the engine that ties them together.

Import from the submodules directly; ``rowmodel.model`` depends on
``dirty_tracker`` while ``engine`` depends on ``rowmodel.model``.
"""
