"""
Opcode lookup table.

Keeps every piece of per-opcode knowledge in one place: the label shown
to learners, the category (opcode family) and, for blocks that touch a
variable or list, the kind of use and the field naming it.
"""

from dataclasses import dataclass
from functools import lru_cache

from .models import UsageKind


@dataclass(frozen=True)
class OpcodeInfo:
    opcode: str
    label: str
    category: str
    usage_kind: UsageKind | None = None
    variable_field: str | None = None

    @property
    def touches_variable(self) -> bool:
        return self.usage_kind is not None


# Checked in order; the first matching prefix wins
CATEGORY_PREFIXES: list[tuple[str, str]] = [
    ("event_", "Events"),
    ("motion_", "Motion"),
    ("looks_", "Looks"),
    ("sound_", "Sound"),
    ("control_", "Control"),
    ("sensing_", "Sensing"),
    ("operator_", "Operators"),
    ("data_", "Variables"),
    ("pen_", "Pen"),
    ("music_", "Music"),
    ("procedures_", "My Blocks"),
    ("argument_", "My Blocks"),
]
OTHER_CATEGORY = "Other"
LIST_CATEGORY = "Lists"

BLOCK_LABELS: dict[str, str] = {
    # Events
    "event_whenflagclicked": "when green flag clicked",
    "event_whenkeypressed": "when key pressed",
    "event_whenthisspriteclicked": "when this sprite clicked",
    "event_whenbroadcastreceived": "when I receive",
    "event_whenbackdropswitchesto": "when backdrop switches to",
    "event_broadcast": "broadcast",
    "event_broadcastandwait": "broadcast and wait",
    # Motion
    "motion_movesteps": "move () steps",
    "motion_turnright": "turn right () degrees",
    "motion_turnleft": "turn left () degrees",
    "motion_goto": "go to",
    "motion_gotoxy": "go to x: () y: ()",
    "motion_glidesecstoxy": "glide () secs to x: () y: ()",
    "motion_pointindirection": "point in direction ()",
    "motion_changexby": "change x by ()",
    "motion_setx": "set x to ()",
    "motion_changeyby": "change y by ()",
    "motion_sety": "set y to ()",
    "motion_ifonedgebounce": "if on edge, bounce",
    "motion_xposition": "x position",
    "motion_yposition": "y position",
    "motion_direction": "direction",
    # Looks
    "looks_say": "say ()",
    "looks_sayforsecs": "say () for () seconds",
    "looks_think": "think ()",
    "looks_thinkforsecs": "think () for () seconds",
    "looks_show": "show",
    "looks_hide": "hide",
    "looks_switchcostumeto": "switch costume to",
    "looks_nextcostume": "next costume",
    "looks_switchbackdropto": "switch backdrop to",
    "looks_nextbackdrop": "next backdrop",
    "looks_changesizeby": "change size by ()",
    "looks_setsizeto": "set size to () %",
    # Sound
    "sound_play": "start sound",
    "sound_playuntildone": "play sound until done",
    "sound_stopallsounds": "stop all sounds",
    # Control
    "control_wait": "wait () seconds",
    "control_repeat": "repeat ()",
    "control_forever": "forever",
    "control_if": "if <> then",
    "control_if_else": "if <> then, else",
    "control_wait_until": "wait until <>",
    "control_repeat_until": "repeat until <>",
    "control_stop": "stop",
    "control_start_as_clone": "when I start as a clone",
    "control_create_clone_of": "create clone of",
    "control_delete_this_clone": "delete this clone",
    # Sensing
    "sensing_touchingobject": "touching ()?",
    "sensing_keypressed": "key () pressed?",
    "sensing_askandwait": "ask () and wait",
    "sensing_answer": "answer",
    "sensing_mousedown": "mouse down?",
    "sensing_timer": "timer",
    "sensing_resettimer": "reset timer",
    # Operators
    "operator_add": "() + ()",
    "operator_subtract": "() - ()",
    "operator_multiply": "() * ()",
    "operator_divide": "() / ()",
    "operator_random": "pick random () to ()",
    "operator_gt": "() > ()",
    "operator_lt": "() < ()",
    "operator_equals": "() = ()",
    "operator_and": "<> and <>",
    "operator_or": "<> or <>",
    "operator_not": "not <>",
    "operator_join": "join () ()",
    "operator_mod": "() mod ()",
    # Variables
    "data_variable": "variable",
    "data_setvariableto": "set variable to ()",
    "data_changevariableby": "change variable by ()",
    "data_showvariable": "show variable",
    "data_hidevariable": "hide variable",
    # Lists
    "data_listcontents": "list",
    "data_addtolist": "add () to list",
    "data_deleteoflist": "delete () of list",
    "data_deletealloflist": "delete all of list",
    "data_insertatlist": "insert () at () of list",
    "data_replaceitemoflist": "replace item () of list with ()",
    "data_itemoflist": "item () of list",
    "data_itemnumoflist": "item # of () in list",
    "data_lengthoflist": "length of list",
    "data_listcontainsitem": "list contains ()?",
    "data_showlist": "show list",
    "data_hidelist": "hide list",
    # Pen
    "pen_clear": "erase all",
    "pen_penDown": "pen down",
    "pen_penUp": "pen up",
    "pen_stamp": "stamp",
    # My Blocks
    "procedures_definition": "define",
    "procedures_call": "custom block",
}

VARIABLE_USAGE: dict[str, tuple[UsageKind, str]] = {
    "data_setvariableto": (UsageKind.WRITE, "VARIABLE"),
    "data_changevariableby": (UsageKind.DELTA, "VARIABLE"),
    "data_variable": (UsageKind.READ, "VARIABLE"),
    "data_showvariable": (UsageKind.READ, "VARIABLE"),
    "data_hidevariable": (UsageKind.READ, "VARIABLE"),
    "data_deletealloflist": (UsageKind.WRITE, "LIST"),
    "data_addtolist": (UsageKind.DELTA, "LIST"),
    "data_deleteoflist": (UsageKind.DELTA, "LIST"),
    "data_insertatlist": (UsageKind.DELTA, "LIST"),
    "data_replaceitemoflist": (UsageKind.DELTA, "LIST"),
    "data_listcontents": (UsageKind.READ, "LIST"),
    "data_itemoflist": (UsageKind.READ, "LIST"),
    "data_itemnumoflist": (UsageKind.READ, "LIST"),
    "data_lengthoflist": (UsageKind.READ, "LIST"),
    "data_listcontainsitem": (UsageKind.READ, "LIST"),
    "data_showlist": (UsageKind.READ, "LIST"),
    "data_hidelist": (UsageKind.READ, "LIST"),
}

# Reporter opcodes synthesized for inline variable/list primitives
VARIABLE_REPORTER_OPCODE = "data_variable"
LIST_REPORTER_OPCODE = "data_listcontents"


def category_for(opcode: str) -> str:
    usage = VARIABLE_USAGE.get(opcode)
    if usage is not None and usage[1] == "LIST":
        return LIST_CATEGORY
    for prefix, category in CATEGORY_PREFIXES:
        if opcode.startswith(prefix):
            return category
    return OTHER_CATEGORY


@lru_cache(maxsize=None)
def get_opcode_info(opcode: str) -> OpcodeInfo:
    """
    Look up everything known about an opcode.

    Unknown opcodes get their own tag as label and a category derived from
    their prefix.

    Args:
        opcode: Block opcode.

    Returns:
        OpcodeInfo for the opcode.
    """
    usage_kind, variable_field = VARIABLE_USAGE.get(opcode, (None, None))
    return OpcodeInfo(
        opcode=opcode,
        label=BLOCK_LABELS.get(opcode, opcode),
        category=category_for(opcode),
        usage_kind=usage_kind,
        variable_field=variable_field,
    )


def get_block_label(opcode: str) -> str:
    return get_opcode_info(opcode).label


def get_block_category(opcode: str) -> str:
    return get_opcode_info(opcode).category
