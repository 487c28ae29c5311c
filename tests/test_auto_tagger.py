import pytest

from togglsync.constants.outcomes import OutcomeCode
from togglsync.exceptions import NoTagConfiguredError, NoTagTargetsError

from fakes import PRIVATE_WID, WORK_WID, make_entry


@pytest.fixture
def entries(toggl):
    for entry in (
        make_entry(9),
        make_entry(10, tags=["old"]),
        make_entry(11, wid=PRIVATE_WID),
        make_entry(12, duration=-1),
    ):
        toggl.entries[entry.id] = entry
    return toggl.entries


@pytest.mark.asyncio
async def test_tags_target_workspace_above_watermark(ctx, toggl, entries):
    ctx.watermarks.advance(9)

    result = await ctx.auto_tagger().auto_tag(WORK_WID, ["billable"])

    assert result.outcome == OutcomeCode.TAGGED
    assert result.tagged_ids == [10]
    assert toggl.calls[-1] == ("bulk_tags", [10], ["billable"])
    assert toggl.entries[10].tags == ["old", "billable"]
    assert toggl.entries[9].tags is None


@pytest.mark.asyncio
async def test_without_target_groups_per_workspace(ctx, toggl, entries):
    result = await ctx.auto_tagger().auto_tag(None, ["x"])

    assert {b.workspace_id: b.time_entry_ids for b in result.batches} == {WORK_WID: [9, 10], PRIVATE_WID: [11]}
    assert toggl.count("bulk_tags") == 2


@pytest.mark.asyncio
async def test_no_tags_configured(ctx, toggl, entries):
    with pytest.raises(NoTagConfiguredError):
        await ctx.auto_tagger().auto_tag(WORK_WID, ["", ""])
    assert toggl.count("list") == 0


@pytest.mark.asyncio
async def test_no_targets(ctx, toggl, entries):
    ctx.watermarks.advance(100)
    with pytest.raises(NoTagTargetsError):
        await ctx.auto_tagger().auto_tag(WORK_WID, ["x"])
    assert toggl.count("bulk_tags") == 0


@pytest.mark.asyncio
async def test_mapping_uses_each_workspace_tags(ctx, toggl, entries):
    ctx.watermarks.advance(9)

    result = await ctx.auto_tagger().auto_tag_by_workspace({WORK_WID: ["work"], PRIVATE_WID: ["home"], 99: []})

    assert {b.workspace_id: (b.time_entry_ids, b.tags) for b in result.batches} == {
        WORK_WID: ([10], ["work"]),
        PRIVATE_WID: ([11], ["home"]),
    }


@pytest.mark.asyncio
async def test_empty_mapping(ctx):
    with pytest.raises(NoTagConfiguredError):
        await ctx.auto_tagger().auto_tag_by_workspace({WORK_WID: []})
