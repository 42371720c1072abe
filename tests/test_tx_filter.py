from chains.tx_filter import FilterConfig, TransactionFilter, touched_accounts
from core.config import (
    JUPITER_V6_PROGRAM,
    PUMP_AMM_PROGRAM,
    PUMP_FUN_AUTHORITY,
    PUMP_FUN_SOURCE,
)

CONFIG = FilterConfig(
    launch_pool_sources=frozenset({PUMP_FUN_SOURCE}),
    transfer_deny_accounts=frozenset({PUMP_FUN_AUTHORITY}),
    transfer_allow_programs=frozenset({PUMP_AMM_PROGRAM, JUPITER_V6_PROGRAM}),
)


def test_launch_pool_source_excluded_for_any_type():
    f = TransactionFilter(CONFIG)
    assert f.exclusion_reason(PUMP_FUN_SOURCE, "SWAP", []) == "launch_pool"
    assert f.exclusion_reason(PUMP_FUN_SOURCE, "TRANSFER", [JUPITER_V6_PROGRAM]) == "launch_pool"


def test_transfer_without_dex_program_excluded():
    f = TransactionFilter(CONFIG)
    assert f.exclusion_reason("SYSTEM_PROGRAM", "TRANSFER", ["someone"]) == "transfer_without_dex"


def test_transfer_touching_denylist_excluded():
    f = TransactionFilter(CONFIG)
    reason = f.exclusion_reason("UNKNOWN", "TRANSFER", [PUMP_FUN_AUTHORITY, PUMP_AMM_PROGRAM])
    assert reason == "denylisted_transfer"


def test_transfer_through_dex_in_scope():
    f = TransactionFilter(CONFIG)
    assert f.is_in_scope("UNKNOWN", "TRANSFER", ["wallet", PUMP_AMM_PROGRAM])


def test_swap_in_scope_regardless_of_accounts():
    f = TransactionFilter(CONFIG)
    assert f.is_in_scope("RAYDIUM", "SWAP", [])
    assert f.is_in_scope(None, None, [])


def test_check_reads_account_data():
    tx = {
        "source": "UNKNOWN",
        "type": "TRANSFER",
        "accountData": [{"account": "wallet"}, {"account": JUPITER_V6_PROGRAM}, {"nativeBalanceChange": 0}],
    }
    assert touched_accounts(tx) == {"wallet", JUPITER_V6_PROGRAM}
    assert TransactionFilter(CONFIG).check(tx) is None


def test_from_settings(settings):
    config = FilterConfig.from_settings(settings)
    assert PUMP_FUN_SOURCE in config.launch_pool_sources
    assert PUMP_FUN_AUTHORITY in config.transfer_deny_accounts
    assert len(config.transfer_allow_programs) == 3
