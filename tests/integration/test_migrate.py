"""End-to-end migration runs against a fake JSON-RPC node."""

import json
from pathlib import Path

import pytest

from nft_tickets_deployments import (
    ArtifactNotFoundError,
    ConfigError,
    DependencyNotDeployedError,
    DeploymentRegistry,
    DeploymentTimeoutError,
    GasLimitExceededError,
    NetworkMismatchError,
    NetworkNotFoundError,
    NetworkUnavailableError,
    TransactionFailedError,
    run_migrations,
)

from conftest import (
    ADDRESS_CONSTRUCTOR,
    TEST_ENV,
    TEST_MNEMONIC_ADDRESS,
    no_sleep,
    write_artifact,
)


@pytest.fixture
def run(registry_path: Path):
    """Run migrations with polling delays and real secrets removed."""

    def _run(config, network="development", **kwargs):
        kwargs.setdefault("environ", TEST_ENV)
        return run_migrations(
            network, config, registry_path=registry_path, sleep=no_sleep, **kwargs
        )

    return _run


def padded(address: str) -> str:
    return "0" * 24 + address[2:].lower()


class TestDevelopmentNetwork:
    """Local node with unlocked accounts and wildcard network id."""

    def test_deploys_all_contracts_in_order(self, fake_node, make_config, run):
        result = run(make_config())

        assert result.executed_migrations == [2, 3, 4]
        assert [d.name for d in result.deployed] == ["UserAccount", "EventManager", "TicketNFT"]
        assert [d.migration for d in result.deployed] == [2, 3, 4]
        assert result.last_completed_migration == 4
        assert result.network_id == 5777
        assert result.dry_run is False

    def test_dependents_receive_user_account_address(self, fake_node, make_config, run):
        result = run(make_config())
        user_account = result.deployed[0]

        assert len(fake_node.sent) == 3
        assert fake_node.sent[0]["data"] == "0x6080604052348015600f57600080fd5b50"
        for sent in fake_node.sent[1:]:
            assert sent["data"].endswith(padded(user_account.address))

        for deployed in result.deployed[1:]:
            assert deployed.constructor_args == [user_account.address]

    def test_no_dry_run_on_local_network(self, fake_node, make_config, run):
        run(make_config())
        assert fake_node.calls_to("eth_estimateGas") == 0

    def test_deployment_details_recorded(self, fake_node, make_config, run, registry_path):
        result = run(make_config())

        registry = DeploymentRegistry(registry_path)
        assert registry.last_completed_migration("development") == 4
        assert registry.contract_names("development") == [
            "UserAccount",
            "EventManager",
            "TicketNFT",
        ]

        recorded = registry.deployment("EventManager", "development")
        deployed = result.deployed[1]
        assert recorded.address == deployed.address
        assert recorded.transaction_hash == deployed.transaction_hash
        assert recorded.block == deployed.block
        assert recorded.timestamp == 1_700_000_000 + deployed.block
        assert recorded.gas_used == 321_000
        assert recorded.url is None  # no explorer for a local chain

    def test_artifacts_record_network_address(self, fake_node, make_config, run, build_dir):
        result = run(make_config())

        with open(build_dir / "TicketNFT.json") as f:
            data = json.load(f)
        assert data["networks"]["5777"]["address"] == result.deployed[2].address

    def test_second_run_deploys_nothing(self, fake_node, make_config, run):
        config = make_config()
        run(config)
        result = run(config)

        assert result.executed_migrations == []
        assert result.deployed == []
        assert result.last_completed_migration == 4
        assert len(fake_node.sent) == 3

    def test_to_step_then_resume(self, fake_node, make_config, run):
        config = make_config()
        first = run(config, to_step=2)
        second = run(config)

        assert first.executed_migrations == [2]
        assert second.executed_migrations == [3, 4]
        user_account = first.deployed[0]
        assert fake_node.sent[1]["data"].endswith(padded(user_account.address))

    def test_reset_redeploys_everything(self, fake_node, make_config, run):
        config = make_config()
        first = run(config)
        second = run(config, reset=True)

        assert second.executed_migrations == [2, 3, 4]
        assert len(fake_node.sent) == 6
        assert second.deployed[0].address != first.deployed[0].address
        # Dependents point at the new UserAccount
        assert fake_node.sent[4]["data"].endswith(padded(second.deployed[0].address))

    def test_from_step_redeploys_dependents_only(self, fake_node, make_config, run):
        config = make_config()
        first = run(config)
        second = run(config, from_step=4)

        assert second.executed_migrations == [4]
        assert fake_node.sent[3]["data"].endswith(padded(first.deployed[0].address))


class TestDependencyOrdering:
    """A dependent contract can only be deployed after its dependency."""

    def test_dependency_missing_on_fresh_network(self, fake_node, make_config, run, registry_path):
        with pytest.raises(DependencyNotDeployedError) as exc_info:
            run(make_config(), from_step=3)

        assert "UserAccount" in str(exc_info.value)
        assert fake_node.sent == []
        assert not registry_path.exists()

    def test_artifact_address_satisfies_dependency(self, fake_node, make_config, run, build_dir):
        # UserAccount deployed earlier by another tool on this network
        existing = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
        write_artifact(
            build_dir,
            "UserAccount",
            networks={"5777": {"address": existing, "transactionHash": "0x01"}},
        )

        result = run(make_config(), from_step=3)

        assert result.executed_migrations == [3, 4]
        assert fake_node.sent[0]["data"].endswith(padded(existing))


class TestFailures:
    """Chain failures abort the run and surface as DeploymentError subclasses."""

    def test_unknown_network(self, fake_node, make_config, run):
        with pytest.raises(NetworkNotFoundError):
            run(make_config(), network="mainnet")

    def test_unreachable_node(self, fake_node, make_config, run):
        config = make_config(development={"port": 9999})
        with pytest.raises(NetworkUnavailableError):
            run(config)

    def test_network_id_mismatch(self, fake_node, make_config, run):
        # Node reports 5777, profile expects Sepolia
        with pytest.raises(NetworkMismatchError):
            run(make_config(), network="sepolia")

    def test_gas_above_block_limit(self, sepolia_node, make_config, run):
        sepolia_node.gas_limit = 15_000_000
        with pytest.raises(GasLimitExceededError):
            run(make_config(), network="sepolia")

    def test_missing_secret(self, sepolia_node, make_config, run):
        with pytest.raises(ConfigError) as exc_info:
            run(make_config(), network="sepolia", environ={"INFURA_PROJECT_ID": "test-project"})
        assert "DEPLOYER_MNEMONIC" in str(exc_info.value)

    def test_reverted_deployment(self, fake_node, make_config, run, registry_path):
        fake_node.revert = True
        with pytest.raises(TransactionFailedError):
            run(make_config())
        assert not registry_path.exists()

    def test_unmined_transaction_times_out(self, fake_node, make_config, run):
        fake_node.mine = False
        with pytest.raises(DeploymentTimeoutError) as exc_info:
            run(make_config(development={"timeoutBlocks": 3}))
        assert "3 blocks" in str(exc_info.value)

    def test_failed_step_resumes_where_it_stopped(
        self, fake_node, make_config, run, build_dir, registry_path
    ):
        (build_dir / "TicketNFT.json").unlink()
        config = make_config()

        with pytest.raises(ArtifactNotFoundError):
            run(config)
        assert DeploymentRegistry(registry_path).last_completed_migration("development") == 3

        write_artifact(build_dir, "TicketNFT", ADDRESS_CONSTRUCTOR)
        result = run(config)

        assert result.executed_migrations == [4]
        assert len(fake_node.sent) == 3


class TestSepoliaNetwork:
    """Wallet-backed remote profile."""

    def test_signs_with_mnemonic_account(self, sepolia_node, make_config, run):
        result = run(make_config(), network="sepolia")

        assert result.executed_migrations == [2, 3, 4]
        assert {sent["from"] for sent in sepolia_node.sent} == {TEST_MNEMONIC_ADDRESS}
        assert sepolia_node.calls_to("eth_sendRawTransaction") == 3
        assert sepolia_node.calls_to("eth_sendTransaction") == 0

    def test_explorer_links(self, sepolia_node, make_config, run):
        result = run(make_config(), network="sepolia")

        for deployed in result.deployed:
            assert deployed.url == f"https://sepolia.etherscan.io/address/{deployed.address}"

    def test_skip_dry_run_honoured(self, sepolia_node, make_config, run):
        run(make_config(), network="sepolia")
        assert sepolia_node.calls_to("eth_estimateGas") == 0

    def test_waits_for_confirmations(self, sepolia_node, make_config, run):
        result = run(make_config(), network="sepolia")

        # Every deployment was followed by at least two more blocks
        assert sepolia_node.block >= result.deployed[-1].block + 2

    def test_networks_tracked_separately(self, fake_node, make_config, run, registry_path):
        config = make_config()
        run(config)

        fake_node.network_id = 11155111
        fake_node.chain_id = 11155111
        sepolia = run(config, network="sepolia")

        assert sepolia.executed_migrations == [2, 3, 4]
        registry = DeploymentRegistry(registry_path)
        assert registry.networks() == ["development", "sepolia"]
        assert (
            registry.deployment("UserAccount", "development").address
            != registry.deployment("UserAccount", "sepolia").address
        )


class TestDryRun:
    """Simulated runs estimate gas without sending transactions."""

    def test_dry_run_only(self, sepolia_node, make_config, run, registry_path):
        result = run(make_config(), network="sepolia", dry_run=True)

        assert result.dry_run is True
        assert result.executed_migrations == [2, 3, 4]
        assert result.estimated_gas == 3 * 500_000
        assert all(d.dry_run for d in result.deployed)
        assert sepolia_node.sent == []
        assert not registry_path.exists()

    def test_predicted_addresses_match_live_run(self, sepolia_node, make_config, run):
        config = make_config(sepolia={"skipDryRun": False})
        result = run(config, network="sepolia")

        assert sepolia_node.calls_to("eth_estimateGas") == 3
        assert len(sepolia_node.sent) == 3
        assert not any(d.dry_run for d in result.deployed)

    def test_dry_run_predicts_dependency_address(self, sepolia_node, make_config, run):
        dry = run(make_config(), network="sepolia", dry_run=True)
        live = run(make_config(), network="sepolia", dry_run=False)

        assert [d.address for d in dry.deployed] == [d.address for d in live.deployed]
        assert dry.deployed[1].constructor_args == [dry.deployed[0].address]

    def test_estimate_above_profile_gas(self, sepolia_node, make_config, run):
        sepolia_node.estimate = 40_000_000
        with pytest.raises(GasLimitExceededError):
            run(make_config(sepolia={"gas": 1_000_000}), network="sepolia", dry_run=True)

    def test_dry_run_forced_on_local_network(self, fake_node, make_config, run):
        result = run(make_config(), dry_run=True)

        assert result.dry_run is True
        assert fake_node.sent == []


class TestKeepExistingDeployment:
    """deploy(..., overwrite=False) keeps a contract that is still on chain."""

    def test_existing_contract_kept_after_reset(
        self, fake_node, make_config, run, tmp_path, raw_config
    ):
        migrations = tmp_path / "keep_migrations"
        migrations.mkdir()
        (migrations / "1_deploy_user_account.py").write_text(
            "def migrate(deployer):\n"
            "    deployer.deploy('UserAccount', overwrite=False)\n"
        )
        raw_config["migrations_directory"] = str(migrations)
        config = make_config()

        first = run(config)
        second = run(config, reset=True)

        assert len(fake_node.sent) == 1
        assert second.deployed[0].address == first.deployed[0].address
