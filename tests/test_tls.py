"""Tests for TLS policies and protocol-restricted contexts."""

import ssl

import pytest

from httpsend.http.tls import (
    PERMISSIVE_POLICY,
    ProtocolRestrictedTlsFactory,
    TlsPolicy,
    filter_protocols,
    get_tls_factory,
    platform_protocols,
)

requires_tls12 = pytest.mark.skipif("TLSv1.2" not in platform_protocols(), reason="TLSv1.2 not available")


class TestFilterProtocols:
    """Test reduction of requested protocols to supported ones."""

    def test_empty_request(self):
        """Test None and empty lists mean platform default."""
        assert filter_protocols(None) == ()
        assert filter_protocols([]) == ()

    def test_legacy_hello_always_removed(self):
        """Test SSLv2Hello never survives, whatever its case."""
        assert filter_protocols(["SSLv2Hello"]) == ()
        assert filter_protocols(["sslv2hello"]) == ()

    def test_unsupported_and_blank_dropped(self):
        """Test names the platform does not know are ignored."""
        assert filter_protocols(["TLSv9", "", None, "QUIC"]) == ()

    @requires_tls12
    def test_case_insensitive_and_deduplicated(self):
        """Test matching ignores case and returns the platform spelling once."""
        assert filter_protocols(["tlsv1.2", "TLSv1.2", " TLSV1.2 "]) == ("TLSv1.2",)

    @requires_tls12
    def test_mixed_request(self):
        """Test a realistic request keeps only the supported entries."""
        assert filter_protocols(["SSLv2Hello", "TLSv1.2", "TLSv9"]) == ("TLSv1.2",)

    def test_platform_protocols_newest_first(self):
        """Test the platform list is ordered from newest to oldest."""
        protocols = platform_protocols()
        order = ["TLSv1.3", "TLSv1.2", "TLSv1.1", "TLSv1", "SSLv3"]

        assert list(protocols) == [name for name in order if name in protocols]


class TestTlsPolicy:
    """Test trust policies."""

    def test_permissive_by_default(self):
        """Test the default policy trusts any certificate and host."""
        context = TlsPolicy().new_context()

        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_verifying_policy(self):
        """Test certificate and hostname validation can be switched on."""
        context = TlsPolicy(verify_certificates=True, verify_hostname=True).new_context()

        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname is True

    def test_hostname_check_needs_certificates(self):
        """Test hostname verification alone does not enable validation."""
        context = TlsPolicy(verify_hostname=True).new_context()

        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_base_context_shared(self):
        """Test the base context of a policy is built once."""
        assert PERMISSIVE_POLICY.base_context() is TlsPolicy().base_context()


class TestProtocolRestrictedTlsFactory:
    """Test ProtocolRestrictedTlsFactory."""

    def test_no_protocols_uses_base_context(self):
        """Test an empty list leaves the platform defaults untouched."""
        factory = ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, [])

        assert factory.protocols == ()
        assert factory.context is PERMISSIVE_POLICY.base_context()

    def test_only_unsupported_protocols_uses_base_context(self):
        """Test a list filtered down to nothing behaves like an empty one."""
        factory = ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, ["SSLv2Hello", "TLSv9"])

        assert factory.context is PERMISSIVE_POLICY.base_context()

    @requires_tls12
    def test_single_protocol_range(self):
        """Test one protocol pins both ends of the version range."""
        factory = ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, ["TLSv1.2"])
        context = factory.context

        assert context is not PERMISSIVE_POLICY.base_context()
        assert context.minimum_version == ssl.TLSVersion.TLSv1_2
        assert context.maximum_version == ssl.TLSVersion.TLSv1_2

    @pytest.mark.skipif(
        not {"TLSv1.3", "TLSv1.2", "TLSv1.1"} <= set(platform_protocols()),
        reason="needs TLSv1.1 to TLSv1.3",
    )
    def test_gap_in_range_disabled(self):
        """Test a protocol between the requested ones is switched off."""
        context = ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, ["TLSv1.3", "TLSv1.1"]).context

        assert context.minimum_version == ssl.TLSVersion.TLSv1_1
        assert context.maximum_version == ssl.TLSVersion.TLSv1_3
        assert context.options & ssl.OP_NO_TLSv1_2

    @requires_tls12
    def test_base_context_not_modified(self):
        """Test deriving a restricted context leaves the base one alone."""
        base = PERMISSIVE_POLICY.base_context()
        before = (base.minimum_version, base.maximum_version, base.options)

        ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, ["TLSv1.2"]).context

        assert (base.minimum_version, base.maximum_version, base.options) == before

    @requires_tls12
    def test_restricted_context_keeps_policy(self):
        """Test the trust policy carries over to derived contexts."""
        policy = TlsPolicy(verify_certificates=True, verify_hostname=True)
        context = ProtocolRestrictedTlsFactory(policy, ["TLSv1.2"]).context

        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_default_policy(self):
        """Test omitting the policy falls back to the permissive one."""
        assert ProtocolRestrictedTlsFactory().base_policy is PERMISSIVE_POLICY

    def test_get_ciphers(self):
        """Test the factory reports the ciphers of its context."""
        ciphers = ProtocolRestrictedTlsFactory().get_ciphers()

        assert ciphers
        assert "name" in ciphers[0]

    def test_repr(self):
        """Test repr names the enabled protocols."""
        assert "platform default" in repr(ProtocolRestrictedTlsFactory())


class TestGetTlsFactory:
    """Test the factory cache."""

    @requires_tls12
    def test_equivalent_requests_share_factory(self):
        """Test requests that filter to the same list reuse one factory."""
        first = get_tls_factory(None, ["TLSv1.2"])
        second = get_tls_factory(PERMISSIVE_POLICY, ["tlsv1.2", "SSLv2Hello"])

        assert first is second
        assert first.context is second.context

    def test_policies_do_not_share(self):
        """Test distinct policies get distinct factories."""
        permissive = get_tls_factory(PERMISSIVE_POLICY, [])
        strict = get_tls_factory(TlsPolicy(verify_certificates=True), [])

        assert permissive is not strict
        assert permissive.context is not strict.context
