# tests/test_catalog_watch_differ.py
from modules.catalog_watch.lib.differ import diff
from modules.catalog_watch.lib.models import Record

WIDGET = Record(name="Widget", price="$10", link="/w1")
GADGET = Record(name="Gadget", price="$20", link="/w2")
GIZMO = Record(name="Gizmo", price="$5", link="/w3")


def test_empty_previous_returns_all_current_in_order():
    assert diff([], [WIDGET, GADGET]) == [WIDGET, GADGET]


def test_empty_current_returns_nothing():
    assert diff([WIDGET], []) == []


def test_same_set_is_not_new():
    assert diff([WIDGET, GADGET], [WIDGET, GADGET]) == []


def test_only_unseen_names_are_new_and_order_follows_current():
    assert diff([GADGET], [GIZMO, WIDGET, GADGET]) == [GIZMO, WIDGET]


def test_identity_is_name_only():
    repriced = Record(name="Widget", price="$99", link="/elsewhere")
    assert diff([WIDGET], [repriced]) == []


def test_names_are_compared_after_trimming():
    stored = Record(name="  Widget\n", price="$10", link="/w1")
    assert diff([stored], [WIDGET]) == []
    assert diff([WIDGET], [Record(name=" Widget ")]) == []


def test_names_are_case_sensitive():
    assert diff([WIDGET], [Record(name="widget")]) == [Record(name="widget")]


def test_accepts_generators():
    previous = (r for r in [WIDGET])
    current = (r for r in [WIDGET, GIZMO])
    assert diff(previous, current) == [GIZMO]
