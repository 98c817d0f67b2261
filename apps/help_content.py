"""Structured help text for the console `help` command and the runner panel."""
from __future__ import annotations

from typing import Dict, List, Optional

HELP_TOPICS: List[Dict[str, object]] = [
    {
        "id": "motion",
        "title": "Moving the turtle",
        "lines": [
            "forward(d)      move d pixels along the heading (animated)",
            "turn(deg)       rotate clockwise by deg",
            "arc(r, deg)     drive a circular arc of radius r, clockwise for deg > 0",
            "setpos(x, y)    jump to x, y without drawing",
            "setrot(deg)     set the absolute heading; 0 points up",
            "setspeed(v)     pixels per second, clamped to 1..9999",
        ],
    },
    {
        "id": "pen",
        "title": "Pen",
        "lines": [
            "up / down       lift or lower the pen; parentheses are optional",
            "setsize(r)      pen radius 1..9, also the turtle footprint",
            "setcolor(r,g,b) channels 0..255",
        ],
    },
    {
        "id": "variables",
        "title": "Variables",
        "lines": [
            "x=5             define x",
            "x=add(2,3)      x = 2 + 3",
            "x=mul(2,3)      x = 2 * 3",
            "y=x             copy x into y",
            "forward(x)      variables are substituted inside (...), -x negates",
        ],
    },
    {
        "id": "blocks",
        "title": "Loops and functions",
        "lines": [
            "LOOP3{forward(10);turn(120)}   one-line loop",
            "LOOP 4 {  ...  }               multi-line loop (scripts)",
            "DEF square(size) {  ...  }     function with an optional parameter (scripts)",
            "square(50)                     call it",
            "Separate commands on one line with ';'.",
        ],
    },
    {
        "id": "console",
        "title": "Console",
        "lines": [
            "clear           empty the output log",
            "quit            close the runner",
            "help [topic]    this text; topics: motion, pen, variables, blocks, console",
            "Reset returns the turtle to the start and erases all lines.",
            "Movement into an obstacle or off the canvas is blocked and rolled back.",
        ],
    },
]


def find_topic(topic_id: str) -> Optional[Dict[str, object]]:
    for topic in HELP_TOPICS:
        if topic["id"] == topic_id:
            return topic
    return None


def help_lines(topic_id: Optional[str] = None) -> List[str]:
    """Flatten one topic (or all of them) into printable lines."""
    if topic_id:
        topic = find_topic(topic_id)
        if topic is None:
            return [f"No help topic '{topic_id}'."]
        topics = [topic]
    else:
        topics = HELP_TOPICS
    lines: List[str] = []
    for topic in topics:
        lines.append(f"{topic['title']}:")
        lines.extend(f"  {line}" for line in topic.get("lines", []))
    return lines


def serialize_help_topics() -> List[Dict[str, object]]:
    """Return a serializable copy of the help topics for tests."""
    return [
        {"id": t["id"], "title": t["title"], "lines": list(t.get("lines", []))}
        for t in HELP_TOPICS
    ]
