"""
Services package for the Dub Schedule Service

This package contains all business logic and service layer components.
Import from the submodules directly; the shared types in `schedule_types`
are also used by `dub_schedule.utils`.
"""
