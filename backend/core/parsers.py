"""
Shared parsing utilities for course data.

These parsers turn raw catalog records (Firestore documents, REST payloads)
into the normalized values the planner works with: course codes, instructor
names, weekly meeting patterns and aggregate ratings.
"""

import re
from datetime import time
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

from .models import Course, MeetingPattern, Rating, DEFAULT_CREDITS


DAY_NAMES = {
    'monday': 'M', 'mon': 'M', 'm': 'M',
    'tuesday': 'T', 'tue': 'T', 'tues': 'T', 'tu': 'T', 't': 'T',
    'wednesday': 'W', 'wed': 'W', 'w': 'W',
    'thursday': 'R', 'thu': 'R', 'thur': 'R', 'thurs': 'R', 'th': 'R', 'r': 'R',
    'friday': 'F', 'fri': 'F', 'f': 'F',
    'saturday': 'S', 'sat': 'S', 'sa': 'S',
    'sunday': 'U', 'sun': 'U', 'su': 'U', 'u': 'U',
}

TIME_RE = re.compile(r'^(\d{1,2})(?::(\d{2}))?\s*([ap])?\.?m?\.?$', re.IGNORECASE)
MEETS_RE = re.compile(
    r'^\s*([A-Za-z]+)\s+(\d{1,2}(?::\d{2})?\s*(?:[ap]\.?m?\.?)?)\s*-\s*(\d{1,2}(?::\d{2})?\s*(?:[ap]\.?m?\.?)?)\s*$',
    re.IGNORECASE
)
COURSE_CODE_RE = re.compile(r'^\s*([A-Za-z]+)\s*[-_]?\s*(\d+[A-Za-z]?)\s*$')


def normalize_course_code(code: str) -> str:
    """
    Normalize a course code to 'SUBJ 1234'.

    Args:
        code: Raw code such as 'cs1101', 'CS  1101' or 'CS_1101'

    Returns:
        Upper-case code with a single space, or the stripped input if it
        does not look like a course code
    """
    if not code:
        return ""
    match = COURSE_CODE_RE.match(code)
    if not match:
        return code.strip().upper()
    return f"{match.group(1).upper()} {match.group(2).upper()}"


def normalize_instructor_name(name: str) -> str:
    """
    Normalize an instructor name for avoidance matching.

    'Smith, John' and 'John  SMITH' both become 'john smith'.
    """
    if not name:
        return ""
    name = name.strip()
    if ',' in name:
        last, _, first = name.partition(',')
        name = f"{first.strip()} {last.strip()}"
    return re.sub(r'\s+', ' ', name).lower().strip()


def parse_meeting_days(days: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """
    Parse meeting days into weekday codes.

    Accepts compact strings ('MWF', 'TR', 'TuTh') or a list of day names
    (['Monday', 'Wednesday']). Unknown tokens are ignored.
    """
    if not days:
        return frozenset()

    if isinstance(days, str) and (re.search(r'[\s,/]', days.strip()) or days.strip().lower() in DAY_NAMES):
        days = [d for d in re.split(r'[\s,/]+', days.strip()) if d]

    if not isinstance(days, str):
        codes = set()
        for day in days:
            code = DAY_NAMES.get(str(day).strip().lower())
            if code:
                codes.add(code)
        return frozenset(codes)

    codes = set()
    for token in re.findall(r'Th|Tu|Sa|Su|[MTWRFSU]', days.strip(), flags=re.IGNORECASE):
        code = DAY_NAMES.get(token.lower())
        if code:
            codes.add(code)
    return frozenset(codes)


def parse_time_of_day(value: str, meridiem: Optional[str] = None) -> Optional[time]:
    """
    Parse a time of day.

    Args:
        value: '14:30', '2:30pm', '10am'
        meridiem: 'a' or 'p' to apply when value carries none

    Returns:
        datetime.time, or None if the value cannot be parsed
    """
    if not value or 'nan' in value.lower():
        return None

    match = TIME_RE.match(value.strip())
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    suffix = (match.group(3) or meridiem or '').lower()

    if suffix == 'p' and hour < 12:
        hour += 12
    elif suffix == 'a' and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def parse_meeting_pattern(meets: str) -> Optional[MeetingPattern]:
    """
    Parse a meeting string such as 'MWF 10:00-10:50am' or 'TR 11:00-12:20pm'.

    A trailing am/pm applies to both ends unless that would put the start
    after the end ('11:00-12:20pm' starts at 11:00 in the morning).

    Returns:
        MeetingPattern, or None for 'TBA', online or unparseable strings
    """
    if not meets:
        return None

    match = MEETS_RE.match(meets)
    if not match:
        return None

    days = parse_meeting_days(match.group(1))
    if not days:
        return None

    end_raw = match.group(3)
    end_suffix = re.search(r'([ap])', end_raw, re.IGNORECASE)
    meridiem = end_suffix.group(1).lower() if end_suffix else None

    end = parse_time_of_day(end_raw)
    start = parse_time_of_day(match.group(2), meridiem)
    if start is None or end is None:
        return None

    if start > end and meridiem == 'p':
        start = parse_time_of_day(match.group(2), 'a')

    return MeetingPattern(days=days, start=start, end=end)


def parse_schedule(schedule: Union[str, Dict[str, Any], None]) -> Optional[MeetingPattern]:
    """
    Parse a stored schedule, either a meeting string or a dict of the form
    {"days": [...] or "MWF", "startTime": "10:00", "endTime": "10:50"}.
    """
    if not schedule:
        return None
    if isinstance(schedule, str):
        return parse_meeting_pattern(schedule)

    days = parse_meeting_days(schedule.get('days'))
    start = parse_time_of_day(str(schedule.get('startTime') or ''))
    end = parse_time_of_day(str(schedule.get('endTime') or ''))

    if not days or start is None:
        return None
    return MeetingPattern(days=days, start=start, end=end or start)


def parse_instructors(raw: Union[str, List[str], None]) -> List[str]:
    """Split an instructor field ('Smith, John; Doe, Jane' or a list)"""
    if not raw:
        return []
    if isinstance(raw, str):
        raw = raw.split(';') if ';' in raw else [raw]
    return [name.strip() for name in raw if name and name.strip() and name.strip().upper() != 'TBA']


def course_from_record(record: Dict[str, Any]) -> Course:
    """
    Convert a raw catalog record to a Course.

    Understands both the catalog document shape (course_code, title, credits,
    sections[].instructor / meeting_days / meeting_time) and the planner
    shape (code, name, hours, professors, schedule, rmpData).

    Args:
        record: Catalog document

    Returns:
        Course with normalized code; credits are kept as stored so the
        validation boundary can reject non-positive values
    """
    code = normalize_course_code(
        record.get('code') or record.get('course_code') or record.get('course_id') or ''
    )

    credits = record.get('hours', record.get('credits', DEFAULT_CREDITS))
    try:
        credits = int(credits)
    except (TypeError, ValueError):
        credits = DEFAULT_CREDITS

    instructors = parse_instructors(record.get('professors') or record.get('instructors'))
    meeting = parse_schedule(record.get('schedule') or record.get('meets'))

    # Catalog documents keep instructor and meeting data per section; the
    # first section stands in for the course
    sections = record.get('sections') or []
    if sections:
        first = sections[0]
        if not instructors:
            instructors = parse_instructors(first.get('instructor'))
        if meeting is None and first.get('meeting_days'):
            meeting = parse_meeting_pattern(
                f"{first.get('meeting_days', '')} {first.get('meeting_time', '')}"
            )

    rating = None
    rmp = record.get('rmpData') or record.get('ratings')
    if isinstance(rmp, dict):
        rating = Rating.average(rmp.values())
    elif isinstance(rmp, list):
        rating = Rating.average(rmp)

    return Course(
        course_id=code,
        name=record.get('name') or record.get('title') or '',
        credits=credits,
        instructors=tuple(instructors),
        meeting=meeting,
        rating=rating,
    )
