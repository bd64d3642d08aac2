"""
Opportunity Engine.

Keeps candidate-opportunity associations consistent, audits their status
changes, composes list-view queries and drives follow-up reminders.
"""

from opportunity_engine.utils.constants import APP_NAME, VERSION

__version__ = VERSION
__app_name__ = APP_NAME
