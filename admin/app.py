# Control Tower Admin
# Admin settings: quarter dates, admins, employees, schedules and quarter prep

import sys
import os

# Add parent directory to path for shared imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from flask import Flask, request, jsonify

from tower import (
    ConfigStore,
    NotionError,
    QUARTER_LABELS,
    WEEKDAYS,
    ORG_TIMEZONE,
    admin_required,
    get_goals,
    get_partners,
    resolve_quarter,
    check_quarter_tiling,
    is_schedule_due,
    is_valid_email,
    next_scheduled_datetime,
    now_in_org_timezone
)
from tower.auth import get_request_email
from tower.slack import get_client, filter_current_quarter, send_checkins, send_partner_checkins

app = Flask(__name__)

store = ConfigStore()


def get_store():
    return store


# ===================
# VALIDATION
# ===================

def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def validate_quarterly_config(config):
    """Return an error message, or None if every quarter has its dates"""
    quarters = config.get('quarters') if isinstance(config, dict) else None
    if not isinstance(quarters, dict):
        return 'Invalid configuration format'

    for label in QUARTER_LABELS:
        q = quarters.get(label)
        if not isinstance(q, dict) or not isinstance(q.get('start'), dict) or not isinstance(q.get('end'), dict):
            return f'Invalid configuration for {label}'
        for point in (q['start'], q['end']):
            month, day = point.get('month'), point.get('day')
            if not _is_int(month) or not _is_int(day) or not 1 <= month <= 12 or not 1 <= day <= 31:
                return f'Invalid configuration for {label}'
    return None


def validate_admin_config(config):
    if not isinstance(config, dict) or not isinstance(config.get('adminEmails'), list):
        return 'adminEmails must be an array'

    for email in config['adminEmails']:
        if not is_valid_email(email):
            return f'Invalid email format: {email}'

    threshold = config.get('atRiskThreshold')
    if threshold is not None:
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 100:
            return 'atRiskThreshold must be a number between 0 and 100'

    check_in_time = config.get('checkInTime')
    if check_in_time is not None:
        hour = check_in_time.get('hour') if isinstance(check_in_time, dict) else None
        if not _is_int(hour) or not 0 <= hour <= 23:
            return 'checkInTime.hour must be a number between 0 and 23'

    return None


def validate_employee_config(config):
    employees = config.get('employees') if isinstance(config, dict) else None
    if not isinstance(employees, list):
        return 'Invalid employee configuration'

    for employee in employees:
        if not isinstance(employee, dict) or not employee.get('name') or not employee.get('notionUserId'):
            return 'Each employee must have a name and notionUserId'
    return None


def _save_response(saved, message):
    if not saved:
        return jsonify({'error': 'Failed to save configuration'}), 500
    return jsonify({'success': True, 'message': message})


# ===================
# CONFIG ROUTES
# ===================

@app.route('/admin/quarterly-config', methods=['GET'])
@admin_required(get_store)
def get_quarterly_config():
    return jsonify(store.get_quarterly_config())


@app.route('/admin/quarterly-config', methods=['POST'])
@admin_required(get_store)
def save_quarterly_config():
    """Save quarter boundaries.

    Quarters that don't tile the year are saved anyway; the gaps and
    overlaps come back as warnings.
    """
    config = request.get_json(silent=True)
    error = validate_quarterly_config(config)
    if error:
        return jsonify({'error': error}), 400

    warnings = check_quarter_tiling(config)
    for warning in warnings:
        print(f"Quarterly config warning: {warning}")

    if not store.save_quarterly_config(config):
        return jsonify({'error': 'Failed to save configuration'}), 500

    return jsonify({
        'success': True,
        'message': 'Configuration saved successfully',
        'warnings': warnings
    })


@app.route('/admin/admin-config', methods=['GET'])
@admin_required(get_store)
def get_admin_config():
    return jsonify(store.get_admin_config())


@app.route('/admin/admin-config', methods=['POST'])
@admin_required(get_store)
def save_admin_config():
    config = request.get_json(silent=True)
    error = validate_admin_config(config)
    if error:
        return jsonify({'error': error}), 400
    return _save_response(store.save_admin_config(config), 'Admin configuration saved successfully')


@app.route('/admin/employee-config', methods=['GET'])
@admin_required(get_store)
def get_employee_config():
    return jsonify(store.get_employee_config())


@app.route('/admin/employee-config', methods=['POST'])
@admin_required(get_store)
def save_employee_config():
    config = request.get_json(silent=True)
    error = validate_employee_config(config)
    if error:
        return jsonify({'error': error}), 400
    return _save_response(
        store.save_employee_config({'employees': config['employees']}),
        'Employee configuration saved successfully'
    )


# ===================
# SCHEDULE ROUTES
# ===================

@app.route('/admin/schedule', methods=['GET'])
@admin_required(get_store)
def get_schedule():
    return jsonify(store.get_schedule())


@app.route('/admin/schedule', methods=['POST'])
@admin_required(get_store)
def save_schedule():
    """Update the weekly check-in schedule.

    Accepts:
        - day: Weekday name
        - enabled: Boolean
    """
    data = request.get_json(silent=True) or {}
    day = data.get('day')
    enabled = data.get('enabled')

    if day not in WEEKDAYS:
        return jsonify({'error': 'Invalid day of week'}), 400
    if not isinstance(enabled, bool):
        return jsonify({'error': 'Enabled must be a boolean value'}), 400

    settings = {'day': day, 'enabled': enabled}
    if not store.save_schedule(settings):
        return jsonify({'error': 'Failed to save schedule settings'}), 500

    print(f"Schedule settings updated: {settings}")
    return jsonify({
        'success': True,
        'message': 'Schedule settings updated successfully',
        'settings': settings
    })


@app.route('/admin/status', methods=['GET'])
@admin_required(get_store)
def status():
    """Schedule plus where the organisation clock is right now"""
    schedule = store.get_schedule()
    check_in_hour = store.get_check_in_hour()
    now = now_in_org_timezone()

    next_run = None
    if schedule.get('day') in WEEKDAYS:
        next_run = next_scheduled_datetime(schedule['day'], check_in_hour, now).isoformat()

    return jsonify({
        'schedule': schedule,
        'partnerSchedule': store.get_partner_schedule(),
        'checkInHour': check_in_hour,
        'currentStatus': {
            'currentDay': WEEKDAYS[now.weekday()],
            'currentTime': now.strftime('%H:%M'),
            'currentDate': now.date().isoformat(),
            'timeZone': ORG_TIMEZONE,
            'isScheduledDay': WEEKDAYS[now.weekday()] == schedule.get('day'),
            'nextScheduledDate': next_run
        }
    })


@app.route('/admin/trigger-checkins', methods=['POST'])
def trigger_checkins():
    """Cron entry point: send the weekly check-ins if it's time.

    Called every hour by the host's scheduler. Does nothing unless the
    schedule is enabled and it is the scheduled day and hour.
    """
    schedule = store.get_schedule()
    check_in_hour = store.get_check_in_hour()
    now = now_in_org_timezone()

    timing = {
        'scheduledDay': schedule.get('day'),
        'scheduledHour': check_in_hour,
        'currentDay': WEEKDAYS[now.weekday()],
        'currentTime': now.strftime('%H:%M')
    }

    if not schedule.get('enabled'):
        return jsonify({'message': 'Scheduled check-ins are disabled', 'sent': False, **timing})

    if not is_schedule_due(schedule, check_in_hour, now):
        return jsonify({'message': 'Not the right time', 'sent': False, **timing})

    client = get_client()
    if not client:
        return jsonify({'error': 'Slack bot token not configured'}), 500

    try:
        all_goals = get_goals()
    except NotionError as e:
        print(f"Error fetching goals for check-ins: {e}")
        return jsonify({'error': 'Failed to trigger scheduled check-ins', 'details': str(e)}), 500

    resolved = resolve_quarter(now, store.get_quarterly_config())
    goals = filter_current_quarter(all_goals, resolved['quarter'])
    sent, owners = send_checkins(client, goals, resolved['progress'] * 100, store.get_employees())

    return jsonify({
        'message': 'Weekly check-ins sent successfully',
        'sent': True,
        'sentCount': sent,
        'totalOwners': owners,
        **timing
    })


@app.route('/admin/partner-schedule', methods=['GET'])
@admin_required(get_store)
def get_partner_schedule():
    return jsonify(store.get_partner_schedule())


@app.route('/admin/partner-schedule', methods=['POST'])
@admin_required(get_store)
def save_partner_schedule():
    """Update the partner check-in schedule.

    Accepts:
        - day: Weekday name
        - enabled: Boolean
    """
    data = request.get_json(silent=True) or {}
    day = data.get('day')
    enabled = data.get('enabled')

    if not isinstance(enabled, bool) or not isinstance(day, str):
        return jsonify({'error': 'Invalid settings format'}), 400
    if day not in WEEKDAYS:
        return jsonify({'error': 'Invalid day specified'}), 400

    settings = {'day': day, 'enabled': enabled}
    if not store.save_partner_schedule(settings):
        return jsonify({'error': 'Failed to update partner schedule settings'}), 500

    print(f"Partner schedule settings updated: {settings}")
    return jsonify({
        'success': True,
        'message': 'Partner schedule settings updated successfully',
        'settings': settings
    })


@app.route('/admin/trigger-partner-checkins', methods=['POST'])
@admin_required(get_store)
def trigger_partner_checkins():
    """Send every active partner's main contact an update prompt now.

    Returns 207 when some prompts went out and others failed.
    """
    client = get_client()
    if not client:
        return jsonify({'error': 'Slack bot token not configured'}), 500

    try:
        active_partners = get_partners()
    except NotionError as e:
        print(f"Error fetching partners: {e}")
        return jsonify({'error': 'Failed to fetch partners', 'details': str(e)}), 500

    if not active_partners:
        return jsonify({'message': 'No active partners found, no check-ins sent', 'successful': 0})

    result = send_partner_checkins(client, active_partners, get_request_email(), store.get_employees())
    successful = result['successful']
    failures = result['failures']

    if failures:
        print(f"Some partner check-ins failed: {failures}")
        return jsonify({
            'message': f"Sent {successful} partner check-ins successfully, {len(failures)} failed",
            'successful': successful,
            'failed': len(failures),
            'failures': failures,
            'skipped': result['skipped']
        }), 207

    return jsonify({
        'message': f"Successfully sent {successful} partner check-ins",
        'successful': successful,
        'skipped': result['skipped']
    })


# ===================
# QUARTER PREP
# ===================

@app.route('/admin/prep-checklist', methods=['GET'])
@admin_required(get_store)
def get_prep_checklist():
    return jsonify(store.get_prep_checklist())


@app.route('/admin/prep-checklist', methods=['POST'])
@admin_required(get_store)
def update_prep_checklist():
    """Tick or untick one item of a quarter's prep checklist.

    Accepts:
        - quarter: Q1-Q4
        - itemKey: Checklist item
        - checked: Boolean
    """
    data = request.get_json(silent=True) or {}
    quarter = data.get('quarter')
    item_key = data.get('itemKey')
    checked = data.get('checked')

    if not quarter or not item_key or not isinstance(checked, bool):
        return jsonify({'error': 'Invalid request. Quarter, itemKey, and checked status required.'}), 400

    checklist = store.get_prep_checklist()
    if quarter not in checklist:
        return jsonify({'error': 'Invalid quarter specified.'}), 400
    if item_key not in checklist[quarter]:
        return jsonify({'error': 'Invalid checklist item specified.'}), 400

    checklist[quarter][item_key] = checked
    if not store.save_prep_checklist(checklist):
        return jsonify({'error': 'Failed to save checklist configuration'}), 500

    return jsonify({'message': 'Checklist updated successfully', 'config': checklist})


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'Control Tower Admin',
        'version': '1.0'
    })


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    app.run(host='0.0.0.0', port=port)
