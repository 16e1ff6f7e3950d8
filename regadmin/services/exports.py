import csv
import io
from datetime import datetime

from regadmin.models.event import Event
from regadmin.models.user import User


def _fmt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "N/A"


def _render(rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


def users_with_event_count_csv(users: list[tuple[User, int]]) -> str:
    rows = [["User ID", "First Name", "Last Name", "Email", "Mobile Number", "Church Name", "Home Address", "Total Events Attended"]]
    for user, events_count in users:
        rows.append(
            [
                user.id,
                user.first_name,
                user.last_name,
                user.email,
                # Leading quote keeps spreadsheet apps from eating the zero
                f"'{user.mobile_number}" if user.mobile_number else "",
                user.church_name,
                user.home_address,
                events_count,
            ]
        )
    return _render(rows)


def user_info_csv(user: User) -> str:
    rows = [
        ["USER INFORMATION"],
        ["Field", "Value"],
        ["User ID", user.id],
        ["First Name", user.first_name],
        ["Last Name", user.last_name],
        ["Email", user.email],
        ["Mobile Number", user.mobile_number],
        ["Church Name", user.church_name],
        ["Home Address", user.home_address],
        ["Working/Student Status", user.working_or_student],
        ["Spheres", ", ".join(s.name for s in user.spheres) or "No Spheres"],
        ["Created At", _fmt(user.created_at)],
        ["Updated At", _fmt(user.updated_at)],
        [],
        ["USER FILES"],
    ]
    if user.files:
        rows.append(["File Name", "File Size (bytes)", "File Type", "Upload Date"])
        rows.extend([f.original_name, f.size, f.mime_type, _fmt(f.created_at)] for f in user.files)
    else:
        rows.append(["No files uploaded"])
    rows.extend([[], ["EVENTS ATTENDED"]])
    if user.events:
        rows.append(["Event ID", "Event Name", "Start Time", "End Time"])
        rows.extend([e.id, e.name, _fmt(e.start_date), _fmt(e.end_date)] for e in user.events)
    else:
        rows.append(["No events attended"])
    return _render(rows)


def event_attendees_csv(event: Event, attendees: list[User]) -> str:
    rows = [
        ["EVENT INFORMATION"],
        ["Event ID", event.id],
        ["Event Name", event.name],
        ["Start Time", _fmt(event.start_date)],
        ["End Time", _fmt(event.end_date)],
        ["Total Attendees", len(attendees)],
        [],
        ["ATTENDEES LIST"],
        ["User ID", "First Name", "Last Name", "Email", "Mobile Number", "Church Name", "Home Address", "Working/Student Status", "Spheres"],
    ]
    for user in attendees:
        rows.append(
            [
                user.id,
                user.first_name,
                user.last_name,
                user.email,
                user.mobile_number,
                user.church_name,
                user.home_address,
                user.working_or_student,
                ", ".join(s.name for s in user.spheres) or "No Spheres",
            ]
        )
    return _render(rows)
