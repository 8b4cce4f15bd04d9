from filegate.gate.keyboard import CHECK_MEMBERSHIP_CALLBACK, build_join_markup, build_membership_text
from filegate.gate.models import GateChannel, GateResult

CHANNELS = [
    GateChannel(ref="@alpha", title="Alpha"),
    GateChannel(ref="@beta", title="Beta"),
    GateChannel(ref="-100777", title="Private"),
]


def test_join_buttons_only_for_missing_channels_with_url():
    result = GateResult(satisfied=False, per_channel={"@alpha": True, "@beta": False, "-100777": False})
    rows = build_join_markup(result, CHANNELS)["inline_keyboard"]

    assert rows[0] == [{"text": "📢 Join Beta", "url": "https://t.me/beta"}]
    # private channel has no url -> no button; check button is last
    assert len(rows) == 2
    assert rows[-1] == [{"text": "✅ Check membership", "callback_data": CHECK_MEMBERSHIP_CALLBACK}]


def test_membership_text_lists_every_channel():
    result = GateResult(satisfied=False, per_channel={"@alpha": True, "@beta": False, "-100777": False})
    text = build_membership_text(result, CHANNELS)
    assert "✅ Alpha" in text
    assert "❌ Beta" in text
    assert "❌ Private" in text
