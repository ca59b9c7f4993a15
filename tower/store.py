# Control Tower Config Store
# JSON documents on disk, one file per key, last write wins

import json
import os
import tempfile
from copy import deepcopy

from .config import (
    CONFIG_DIR,
    DEFAULT_ADMIN_CONFIG,
    DEFAULT_EMPLOYEE_CONFIG,
    DEFAULT_PARTNER_SCHEDULE,
    DEFAULT_PREP_CHECKLIST,
    DEFAULT_QUARTERS,
    DEFAULT_SCHEDULE
)

QUARTERLY_CONFIG_KEY = 'quarterly-dates'
ADMIN_CONFIG_KEY = 'admin-config'
EMPLOYEE_CONFIG_KEY = 'employee-config'
SCHEDULE_KEY = 'schedule'
PARTNER_SCHEDULE_KEY = 'partner-schedule'
PREP_CHECKLIST_KEY = 'prep-checklist'


class ConfigStore:
    """Key-value store for the admin-editable documents.

    Nothing is cached: every read goes back to disk so edits made by another
    process are picked up on the next request. Concurrent writers are not
    coordinated; whichever write lands last is what the next read sees.
    """

    def __init__(self, config_dir=CONFIG_DIR):
        self.config_dir = config_dir

    def _path(self, key):
        return os.path.join(self.config_dir, f"{key}.json")

    def read(self, key, default):
        """Return the stored document, or a copy of default if it can't be read."""
        path = self._path(key)
        if not os.path.exists(path):
            return deepcopy(default)

        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error reading {key} config: {e}")
            return deepcopy(default)

    def write(self, key, document):
        """Replace the stored document. Returns True on success."""
        try:
            payload = json.dumps(document, indent=2)
            os.makedirs(self.config_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.config_dir, suffix='.tmp')
            with os.fdopen(fd, 'w') as f:
                f.write(payload)
            os.replace(tmp_path, self._path(key))
            return True
        except (OSError, TypeError) as e:
            print(f"Error saving {key} config: {e}")
            return False

    # ===================
    # DOCUMENTS
    # ===================

    def get_quarterly_config(self):
        return self.read(QUARTERLY_CONFIG_KEY, {'quarters': DEFAULT_QUARTERS})

    def save_quarterly_config(self, config):
        return self.write(QUARTERLY_CONFIG_KEY, config)

    def get_admin_config(self):
        config = self.read(ADMIN_CONFIG_KEY, DEFAULT_ADMIN_CONFIG)
        if not isinstance(config, dict):
            return deepcopy(DEFAULT_ADMIN_CONFIG)
        return config

    def save_admin_config(self, config):
        return self.write(ADMIN_CONFIG_KEY, config)

    def get_employee_config(self):
        config = self.read(EMPLOYEE_CONFIG_KEY, DEFAULT_EMPLOYEE_CONFIG)
        if not isinstance(config, dict) or not isinstance(config.get('employees'), list):
            return deepcopy(DEFAULT_EMPLOYEE_CONFIG)
        return config

    def save_employee_config(self, config):
        return self.write(EMPLOYEE_CONFIG_KEY, config)

    def get_schedule(self):
        """Stored schedule, else SCHEDULE_DAY / SCHEDULE_ENABLED from the environment."""
        fallback = {
            'day': os.environ.get('SCHEDULE_DAY', DEFAULT_SCHEDULE['day']),
            'enabled': os.environ.get('SCHEDULE_ENABLED', '').lower() == 'true' or DEFAULT_SCHEDULE['enabled']
        }
        schedule = self.read(SCHEDULE_KEY, fallback)
        if not isinstance(schedule, dict):
            return fallback
        return schedule

    def save_schedule(self, schedule):
        return self.write(SCHEDULE_KEY, schedule)

    def get_partner_schedule(self):
        schedule = self.read(PARTNER_SCHEDULE_KEY, DEFAULT_PARTNER_SCHEDULE)
        if not isinstance(schedule, dict):
            return deepcopy(DEFAULT_PARTNER_SCHEDULE)
        return schedule

    def save_partner_schedule(self, schedule):
        return self.write(PARTNER_SCHEDULE_KEY, schedule)

    def get_prep_checklist(self):
        """Checklist state per quarter.

        Stored values are laid over the defaults, so quarters and items
        missing from the file come back unchecked.
        """
        stored = self.read(PREP_CHECKLIST_KEY, DEFAULT_PREP_CHECKLIST)
        checklist = deepcopy(DEFAULT_PREP_CHECKLIST)
        if not isinstance(stored, dict):
            return checklist

        for quarter, items in checklist.items():
            saved = stored.get(quarter)
            if isinstance(saved, dict):
                items.update(saved)
        return checklist

    def save_prep_checklist(self, checklist):
        return self.write(PREP_CHECKLIST_KEY, checklist)

    def get_employees(self):
        return self.get_employee_config()['employees']

    def get_check_in_hour(self):
        check_in_time = self.get_admin_config().get('checkInTime')
        if not isinstance(check_in_time, dict):
            check_in_time = {}
        hour = check_in_time.get('hour', DEFAULT_ADMIN_CONFIG['checkInTime']['hour'])
        if not isinstance(hour, int) or not 0 <= hour <= 23:
            return DEFAULT_ADMIN_CONFIG['checkInTime']['hour']
        return hour

    def get_at_risk_threshold(self):
        threshold = self.get_admin_config().get('atRiskThreshold', DEFAULT_ADMIN_CONFIG['atRiskThreshold'])
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            return DEFAULT_ADMIN_CONFIG['atRiskThreshold']
        return threshold
