from __future__ import annotations

import pytest

from plughost.core.errors import SignatureStateError
from plughost.core.plugins.models import PluginBase, PluginErrorCode, SignatureStatus
from plughost.core.plugins.trust import TrustValidator
from tests.helpers.plugins import DummyLogger


def _plugin(plugin_id="acme-ds", *, signature=SignatureStatus.unsigned, backend=True, core=False, d="/p/acme-ds"):
    return PluginBase(id=plugin_id, type="datasource", backend=backend, core=core, signature=signature, plugin_dir=d)


def _validator(**kw):
    kw.setdefault("require_signed", True)
    return TrustValidator(logger=DummyLogger(), **kw)


def test_valid_is_accepted_immediately():
    d = _validator().validate(_plugin(signature=SignatureStatus.valid))
    assert d.accepted is True
    assert d.error_code is None


def test_descendant_inherits_valid_root_signature():
    root = _plugin("A", signature=SignatureStatus.valid, d="/p/A")
    child = _plugin("B", signature=SignatureStatus.unsigned, d="/p/A/B")
    d = _validator().validate(child, root)
    assert d.accepted is True
    assert child.signature == SignatureStatus.valid


def test_descendant_inherits_non_valid_root_signature():
    root = _plugin("A", signature=SignatureStatus.modified, d="/p/A")
    child = _plugin("B", signature=SignatureStatus.unsigned, d="/p/A/B")
    d = _validator().validate(child, root)
    assert d.accepted is False
    assert d.error_code == PluginErrorCode.signature_modified
    assert child.signature == SignatureStatus.modified


def test_core_descendant_does_not_inherit():
    root = _plugin("A", signature=SignatureStatus.invalid, d="/p/A")
    child = _plugin("B", signature=SignatureStatus.unsigned, core=True, d="/p/A/B")
    d = _validator(require_signed=False).validate(child, root)
    assert d.accepted is True
    assert child.signature == SignatureStatus.unsigned


def test_unsigned_backend_rejected_when_signing_enforced():
    d = _validator().validate(_plugin())
    assert d.accepted is False
    assert d.error_code == PluginErrorCode.signature_missing


def test_unsigned_backend_accepted_when_signing_not_enforced():
    d = _validator(require_signed=False).validate(_plugin())
    assert d.accepted is True


@pytest.mark.parametrize("state", [SignatureStatus.unsigned, SignatureStatus.invalid, SignatureStatus.modified])
def test_frontend_plugins_are_never_rejected(state):
    d = _validator().validate(_plugin(signature=state, backend=False))
    assert d.accepted is True


def test_allowlist_accepts_unsigned():
    d = _validator(allow_unsigned=["acme-ds"]).validate(_plugin())
    assert d.accepted is True
    d = _validator(allow_unsigned=["someone-else"]).validate(_plugin())
    assert d.accepted is False


def test_dev_mode_accepts_unsigned():
    assert _validator(dev_mode=True).validate(_plugin()).accepted is True


def test_condition_takes_precedence_over_dev_mode_and_allowlist():
    v = _validator(dev_mode=True, allow_unsigned=["acme-ds"], allow_unsigned_condition=lambda p: False)
    d = v.validate(_plugin())
    assert d.accepted is False
    assert d.error_code == PluginErrorCode.signature_missing

    v = _validator(allow_unsigned_condition=lambda p: p.id.startswith("acme-"))
    assert v.validate(_plugin()).accepted is True


def test_overrides_do_not_rescue_invalid_or_modified():
    v = _validator(dev_mode=True, allow_unsigned=["acme-ds"], allow_unsigned_condition=lambda p: True)
    d = v.validate(_plugin(signature=SignatureStatus.invalid))
    assert (d.accepted, d.error_code) == (False, PluginErrorCode.signature_invalid)
    d = v.validate(_plugin(signature=SignatureStatus.modified))
    assert (d.accepted, d.error_code) == (False, PluginErrorCode.signature_modified)


def test_unexpected_state_is_fatal():
    with pytest.raises(SignatureStateError):
        _validator().validate(_plugin(signature=SignatureStatus.internal))
