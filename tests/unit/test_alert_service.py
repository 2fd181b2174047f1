"""
Unit tests for stock alert classification.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from deepstaq.services.alert_service import (
    AlertType, Thresholds, classify_stock, evaluate_alerts, get_default_thresholds, resolve_thresholds
)

DEFAULTS = Thresholds(Decimal('0'), Decimal('3'))


@pytest.mark.parametrize('stock, expected', [
    (Decimal('-1'), AlertType.EMPTY),
    (Decimal('0'), AlertType.EMPTY),
    (Decimal('0.5'), AlertType.LOW),
    (Decimal('3'), AlertType.LOW),
    (Decimal('3.001'), AlertType.OK),
    (Decimal('50'), AlertType.OK),
])
def test_classify_with_defaults(stock, expected):
    assert classify_stock(stock, DEFAULTS) == expected


def test_defaults_outside_app_context():
    assert get_default_thresholds() == DEFAULTS


def test_defaults_come_from_config(app):
    app.config['DEFAULT_LOW_THRESHOLD'] = '10'
    with app.app_context():
        assert get_default_thresholds() == Thresholds(Decimal('0'), Decimal('10'))


class TestResolveThresholds:

    def test_unit_override_wins(self):
        override = Thresholds(Decimal('2'), Decimal('8'))
        godown = Thresholds(Decimal('1'), Decimal('5'))
        assert resolve_thresholds(7, godown, {7: override}, DEFAULTS) == override

    def test_godown_setting_when_no_override(self):
        godown = Thresholds(Decimal('1'), Decimal('5'))
        assert resolve_thresholds(7, godown, {8: DEFAULTS}, DEFAULTS) == godown

    def test_defaults_when_nothing_saved(self):
        assert resolve_thresholds(7, None, {}, DEFAULTS) == DEFAULTS


def test_evaluate_alerts_sorted_by_severity():
    def prod(pid, name, unit_type_id=1):
        return SimpleNamespace(id=pid, name=name, godown_id=1, unit_type_id=unit_type_id)

    levels = [
        (prod(1, 'Apples'), Decimal('20')),
        (prod(2, 'Beans'), Decimal('2')),
        (prod(3, 'Corn'), Decimal('0')),
        (prod(4, 'Dates', unit_type_id=2), Decimal('6')),
    ]
    overrides = {1: {2: Thresholds(Decimal('1'), Decimal('10'))}}

    alerts = evaluate_alerts(levels, {}, overrides)

    assert [a['name'] for a in alerts] == ['Corn', 'Beans', 'Dates', 'Apples']
    assert [a['alert_type'] for a in alerts] == ['EMPTY', 'LOW', 'LOW', 'OK']
    assert alerts[2]['low_threshold'] == 10.0
