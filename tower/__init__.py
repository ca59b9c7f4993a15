# Control Tower Shared Module
# Common functions used across all Control Tower apps

from .config import (
    NOTION_TOKEN,
    SLACK_BOT_TOKEN,
    SLACK_CHANNEL_ID,
    CONFIG_DIR,
    ORG_TIMEZONE,
    WEEKDAYS
)

from .helpers import (
    now_in_org_timezone,
    next_scheduled_datetime,
    is_schedule_due,
    is_goal_at_risk,
    is_valid_email,
    format_date_display,
    format_long_date
)

from .quarters import (
    QUARTER_LABELS,
    resolve_quarter,
    quarter_summary,
    normalize_quarterly_config,
    check_quarter_tiling,
    next_quarter,
    next_quarter_start
)

from .store import ConfigStore

from .notion import (
    NotionError,
    get_goals,
    get_focus_options,
    get_partners,
    update_goal_status,
    update_goal_progress,
    record_checkin,
    create_goal
)

from .auth import admin_required, is_admin
