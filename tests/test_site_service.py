"""Tests for site creation: check ordering, quota, uniqueness and claims mirroring."""

import pytest

from gratias.errors import ErrorCode, ServiceError
from gratias.models.site import DomainEntry
from gratias.services.claims import CLAIM_MESSAGES, CLAIM_PLAN, CLAIM_SITE_COUNT, CLAIM_STATUS
from gratias.services.site_service import SiteCreationService
from tests.fakes import API_KEY_PREFIX, FakeSite


@pytest.fixture
def service(site_repo, user_repo, claims_sync):
    return SiteCreationService(site_repo, user_repo, claims_sync, api_key_prefix=API_KEY_PREFIX)


async def _expect_error(coro, code: ErrorCode) -> ServiceError:
    with pytest.raises(ServiceError) as exc_info:
        await coro
    assert exc_info.value.code == code
    return exc_info.value


class TestCreateSiteSuccess:
    @pytest.mark.asyncio
    async def test_creates_site_and_returns_prefixed_key(self, service, site_repo, user_repo) -> None:
        result = await service.create_site("u1", "Shop", ["  Shop.Example.com "], "vitrine")

        assert result.api_key.startswith(API_KEY_PREFIX)
        assert len(result.api_key) > len(API_KEY_PREFIX)
        assert result.token == "reload"
        assert result.site_count == 1
        assert result.claims_synced is True

        site = site_repo.sites[0]
        assert site.owner_identity == "u1"
        assert site.domains == [DomainEntry(value="shop.example.com", locked=False)]
        assert result.api_key == API_KEY_PREFIX + site.api_key_suffix
        # Profile created lazily with defaults
        assert user_repo.users["u1"].max_sites == 2

    @pytest.mark.asyncio
    async def test_claims_updated_with_count_and_message(self, service, identity_provider) -> None:
        identity_provider.claims["u1"] = {"foreign": "kept"}
        await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")

        claims = identity_provider.claims["u1"]
        assert claims["foreign"] == "kept"
        assert claims[CLAIM_PLAN] == "free"
        assert claims[CLAIM_STATUS] == "active"
        assert claims[CLAIM_SITE_COUNT] == 1
        assert claims[CLAIM_MESSAGES][-1].startswith('success.Site "Shop" created on ')
        assert claims[CLAIM_MESSAGES][-1].endswith("Z")

    @pytest.mark.asyncio
    async def test_claims_failure_does_not_fail_creation(self, service, site_repo, identity_provider) -> None:
        identity_provider.fail_claims_read = True
        result = await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")

        assert result.claims_synced is False
        assert result.api_key.startswith(API_KEY_PREFIX)
        assert len(site_repo.sites) == 1

    @pytest.mark.asyncio
    async def test_unlocked_domain_on_other_site_is_allowed(self, service, site_repo) -> None:
        site_repo.sites.append(
            FakeSite("u2", "Other", [DomainEntry(value="shop.example.com")], "vitrine", "k-other")
        )
        result = await service.create_site("u1", "Shop", ["shop.example.com"], "landing")
        assert result.site_count == 1

    @pytest.mark.asyncio
    async def test_site_count_is_recounted_from_storage(self, service, site_repo) -> None:
        # A site written by a concurrent request for the same owner
        site_repo.sites.append(FakeSite("u1", "Blog", [DomainEntry(value="blog.example.com")], "autres", "k-1"))
        result = await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        assert result.site_count == 2


class TestCreateSiteValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("site_name", "domains", "site_type"),
        [
            (None, ["a.co"], "vitrine"),
            ("", ["a.co"], "vitrine"),
            ("Shop", None, "vitrine"),
            ("Shop", [], "vitrine"),
            ("Shop", ["a.co"], None),
        ],
    )
    async def test_missing_fields(self, service, site_repo, site_name, domains, site_type) -> None:
        await _expect_error(service.create_site("u1", site_name, domains, site_type), ErrorCode.MISSING_FIELDS)
        assert site_repo.sites == []

    @pytest.mark.asyncio
    async def test_missing_fields_still_creates_profile(self, service, user_repo) -> None:
        await _expect_error(service.create_site("u1", None, None, None), ErrorCode.MISSING_FIELDS)
        assert "u1" in user_repo.users

    @pytest.mark.asyncio
    async def test_site_name_too_long(self, service) -> None:
        await _expect_error(
            service.create_site("u1", "x" * 16, ["a.co"], "vitrine"), ErrorCode.SITE_NAME_TOO_LONG
        )

    @pytest.mark.asyncio
    async def test_site_name_at_limit_is_accepted(self, service) -> None:
        result = await service.create_site("u1", "x" * 15, ["a.co"], "vitrine")
        assert result.site_count == 1

    @pytest.mark.asyncio
    async def test_invalid_site_type(self, service) -> None:
        await _expect_error(service.create_site("u1", "Shop", ["a.co"], "blog"), ErrorCode.INVALID_SITE_TYPE)

    @pytest.mark.asyncio
    async def test_invalid_domain_reports_first_offender(self, service, site_repo) -> None:
        error = await _expect_error(
            service.create_site("u1", "Shop", ["good.com", "http://bad.com", "a..co"], "vitrine"),
            ErrorCode.INVALID_DOMAIN,
        )
        assert "http://bad.com" in error.details
        assert site_repo.sites == []

    @pytest.mark.asyncio
    async def test_non_ascii_port_is_not_stored(self, service, site_repo) -> None:
        await _expect_error(
            service.create_site("u1", "Shop", ["shop.example.com:٣٠٠٠"], "vitrine"),
            ErrorCode.INVALID_DOMAIN,
        )
        assert site_repo.sites == []

    @pytest.mark.asyncio
    async def test_non_string_domain_is_invalid(self, service) -> None:
        await _expect_error(service.create_site("u1", "Shop", [42], "vitrine"), ErrorCode.INVALID_DOMAIN)

    @pytest.mark.asyncio
    async def test_type_checked_before_quota(self, service, user_repo, site_repo) -> None:
        await user_repo.get_or_create("u1", "free", 0)
        await _expect_error(service.create_site("u1", "Shop", ["a.co"], "blog"), ErrorCode.INVALID_SITE_TYPE)

    @pytest.mark.asyncio
    async def test_quota_checked_before_domains(self, service, user_repo) -> None:
        await user_repo.get_or_create("u1", "free", 0)
        await _expect_error(
            service.create_site("u1", "Shop", ["not a domain"], "vitrine"), ErrorCode.SITE_QUOTA_EXCEEDED
        )


class TestCreateSiteConflicts:
    @pytest.mark.asyncio
    async def test_locked_domain_on_another_site(self, service, site_repo) -> None:
        site_repo.sites.append(
            FakeSite("u2", "Other", [DomainEntry(value="shop.example.com", locked=True)], "vitrine", "k-other")
        )
        error = await _expect_error(
            service.create_site("u1", "Shop", ["SHOP.example.com"], "vitrine"), ErrorCode.DOMAIN_ALREADY_EXISTS
        )
        assert "shop.example.com" in error.details
        assert len(site_repo.sites) == 1

    @pytest.mark.asyncio
    async def test_duplicate_name_for_same_owner(self, service, site_repo) -> None:
        await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        await _expect_error(
            service.create_site("u1", "Shop", ["other.example.com"], "vitrine"), ErrorCode.SITE_NAME_EXISTS
        )
        assert len(site_repo.sites) == 1

    @pytest.mark.asyncio
    async def test_same_name_for_different_owners(self, service, site_repo) -> None:
        await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        await service.create_site("u2", "Shop", ["shop.example.com"], "vitrine")
        assert len(site_repo.sites) == 2

    @pytest.mark.asyncio
    async def test_duplicate_key_on_insert_maps_to_name_exists(self, service, site_repo) -> None:
        # Lost race: the pre-check saw nothing, the unique index rejects the insert
        await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        site_repo.skip_name_precheck = True
        await _expect_error(
            service.create_site("u1", "Shop", ["other.example.com"], "vitrine"), ErrorCode.SITE_NAME_EXISTS
        )
        assert len(site_repo.sites) == 1

    @pytest.mark.asyncio
    async def test_duplicate_api_key_is_server_error(self, service, site_repo, monkeypatch) -> None:
        import uuid

        fixed = uuid.UUID("12345678-1234-5678-1234-567812345678")
        monkeypatch.setattr("gratias.services.site_service.uuid.uuid4", lambda: fixed)
        await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        await _expect_error(
            service.create_site("u1", "Blog", ["blog.example.com"], "vitrine"), ErrorCode.SERVER_ERROR
        )


class TestQuotaScenario:
    @pytest.mark.asyncio
    async def test_two_creates_then_quota(self, service, site_repo, identity_provider) -> None:
        first = await service.create_site("u1", "Shop", ["shop.example.com"], "vitrine")
        assert first.site_count == 1
        assert identity_provider.claims["u1"][CLAIM_SITE_COUNT] == 1

        await _expect_error(
            service.create_site("u1", "Shop", ["shop.example.com"], "vitrine"), ErrorCode.SITE_NAME_EXISTS
        )

        second = await service.create_site("u1", "Blog", ["blog.example.com"], "reservation")
        assert second.site_count == 2

        await _expect_error(
            service.create_site("u1", "Third", ["third.example.com"], "landing"), ErrorCode.SITE_QUOTA_EXCEEDED
        )
        assert await site_repo.count_by_owner("u1") == 2
        assert identity_provider.claims["u1"][CLAIM_SITE_COUNT] == 2
