from togglsync.services.update_flag import UpdateFlag


def test_empty_cell_is_steady_state():
    flag = UpdateFlag.parse(None)
    assert flag.value == 0
    assert not flag.pending
    assert UpdateFlag.parse("").value == 0
    assert UpdateFlag.parse("garbage").value == 0


def test_pending_and_count():
    assert UpdateFlag.parse(1).pending
    assert UpdateFlag.parse("101").pending
    assert UpdateFlag.parse(101).update_count == 1
    assert not UpdateFlag.parse(100).pending
    assert not UpdateFlag.parse(0).pending


def test_mark_applied_adds_99():
    assert UpdateFlag(1).mark_applied().value == 100
    applied = UpdateFlag(101).mark_applied()
    assert applied.value == 200
    assert applied.update_count == 2
    assert not applied.pending


def test_request_update():
    assert UpdateFlag(0).request_update().value == 1
    assert UpdateFlag(200).request_update().value == 201
    assert UpdateFlag(201).request_update().value == 201
