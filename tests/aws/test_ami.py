import re
from datetime import UTC, datetime

import pytest

from ec2_runner.aws.ami import describe_images_params, parse_creation_date, select_image
from ec2_runner.errors import NoMatchError, ProviderError
from ec2_runner.spec import ImageCriteria

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def ami(image_id, name, created, owner="111111111111"):
    image = {"ImageId": image_id, "Name": name, "OwnerId": owner}
    if created is not None:
        image["CreationDate"] = created
    return image


class TestParseCreationDate:
    def test_zulu_timestamp(self):
        assert parse_creation_date("2024-03-01T10:20:30.000Z") == datetime(
            2024, 3, 1, 10, 20, 30, tzinfo=UTC,
        )

    @pytest.mark.parametrize("raw", [None, "", "not-a-date"])
    def test_missing_or_invalid(self, raw):
        assert parse_creation_date(raw) is None


class TestDescribeImagesParams:
    def test_always_executable_by_self_and_not_deprecated(self):
        params = describe_images_params(ImageCriteria(owners=("self",)))
        assert params["ExecutableUsers"] == ["self"]
        assert params["IncludeDeprecated"] is False
        assert params["Owners"] == ["self"]

    def test_filters_become_single_value_filters(self):
        params = describe_images_params(
            ImageCriteria(filters=(("architecture", "arm64"), ("tag:role", "runner"))),
        )
        assert params["Filters"] == [
            {"Name": "architecture", "Values": ["arm64"]},
            {"Name": "tag:role", "Values": ["runner"]},
        ]
        assert "Owners" not in params


class TestSelectImage:
    @pytest.mark.asyncio
    async def test_newest_image_wins_across_pages(self, fake_ec2):
        fake_ec2.image_pages = [
            [ami("ami-old", "runner-1", "2024-01-01T00:00:05.000Z")],
            [
                ami("ami-new", "runner-3", "2024-06-01T00:00:01.000Z"),
                ami("ami-mid", "runner-2", "2024-03-01T00:00:59.000Z"),
            ],
        ]

        image = await select_image(fake_ec2, ImageCriteria(owners=("self",)))

        assert image.image_id == "ami-new"
        assert image.name == "runner-3"

    @pytest.mark.asyncio
    async def test_full_timestamp_comparison_not_seconds_of_minute(self, fake_ec2):
        fake_ec2.image_pages = [[
            ami("ami-later", "a", "2024-05-02T00:00:01.000Z"),
            ami("ami-earlier", "b", "2024-05-01T00:00:59.000Z"),
        ]]

        image = await select_image(fake_ec2, ImageCriteria(owners=("self",)))

        assert image.image_id == "ami-later"

    @pytest.mark.asyncio
    async def test_name_pattern_applied_client_side(self, fake_ec2):
        fake_ec2.image_pages = [[
            ami("ami-1", "gha-runner-ubuntu-2024", "2024-01-01T00:00:00.000Z"),
            ami("ami-2", "something-else", "2024-12-01T00:00:00.000Z"),
            ami("ami-3", "", "2024-12-02T00:00:00.000Z"),
        ]]

        image = await select_image(fake_ec2, ImageCriteria(name=re.compile(r"^gha-runner-")))

        assert image.image_id == "ami-1"

    @pytest.mark.asyncio
    async def test_missing_creation_date_treated_as_epoch(self, fake_ec2):
        fake_ec2.image_pages = [[
            ami("ami-undated", "x", None),
            ami("ami-dated", "y", "2001-01-01T00:00:00.000Z"),
        ]]

        image = await select_image(fake_ec2, ImageCriteria(owners=("self",)))

        assert image.image_id == "ami-dated"

    @pytest.mark.asyncio
    async def test_only_undated_images_still_selects_one(self, fake_ec2):
        fake_ec2.image_pages = [[ami("ami-undated", "x", None)]]

        image = await select_image(fake_ec2, ImageCriteria(owners=("self",)))

        assert image.image_id == "ami-undated"
        assert image.creation_date is None

    @pytest.mark.asyncio
    async def test_repeated_selection_is_deterministic(self, fake_ec2):
        fake_ec2.image_pages = [[
            ami("ami-a", "a", "2024-01-01T00:00:00.000Z"),
            ami("ami-b", "b", "2024-02-01T00:00:00.000Z"),
            ami("ami-c", "c", "2023-02-01T00:00:00.000Z"),
        ]]
        criteria = ImageCriteria(owners=("self",))

        picks = {(await select_image(fake_ec2, criteria)).image_id for _ in range(5)}

        assert picks == {"ami-b"}

    @pytest.mark.asyncio
    async def test_no_survivors_raises_no_match(self, fake_ec2):
        # Owner filtering happens provider-side; an owner nobody matches
        # yields no images at all.
        fake_ec2.image_pages = [[]]

        with pytest.raises(NoMatchError):
            await select_image(fake_ec2, ImageCriteria(owners=("999999999999",)))

        assert fake_ec2.describe_images_params[0]["Owners"] == ["999999999999"]

    @pytest.mark.asyncio
    async def test_pattern_filtering_everything_raises_no_match(self, fake_ec2):
        fake_ec2.image_pages = [[ami("ami-1", "windows", "2024-01-01T00:00:00.000Z")]]

        with pytest.raises(NoMatchError, match="No AMIs found"):
            await select_image(fake_ec2, ImageCriteria(name=re.compile("ubuntu")))

    @pytest.mark.asyncio
    async def test_listing_failure_is_provider_error_without_retry(self, fake_ec2, client_error):
        fake_ec2.image_pages = [[]]
        fake_ec2.describe_images_error = client_error("RequestLimitExceeded", "DescribeImages")

        with pytest.raises(ProviderError) as excinfo:
            await select_image(fake_ec2, ImageCriteria(owners=("self",)))

        assert len(fake_ec2.describe_images_params) == 1
        assert excinfo.value.__cause__ is fake_ec2.describe_images_error
