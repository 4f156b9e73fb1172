# MetaNode Multi-Pool Staking Contract
#
# Pools accrue MetaNode every block in proportion to their weight; each pool's
# share is split among its stakers through a reward-per-share accumulator.
# Unstaked principal waits in a per-user queue until its unlock block.

ACC_PRECISION = 10 ** 12

NATIVE = "native"
TOKEN = "token"

ADMIN_ROLE = "admin"

GLOBAL_FLAG = "global"
PAUSE_FLAGS = ["staking", "unstaking", "withdraw", "claim"]

# State Variables
reward_token = Variable()
reward_per_block = Variable()
total_pool_weight = Variable()
pool_count = Variable()
native_contract = Variable()
access_control = Variable()

pools = Hash(default_value=None)
token_pools = Hash(default_value=None)
stakes = Hash(default_value=None)
unstake_requests = Hash(default_value=None)
paused = Hash(default_value=False)

# Events
DepositEvent = LogEvent(
    event="Deposit",
    params={
        "user": {"type": str, "idx": True},
        "pool_id": {"type": int},
        "amount": {"type": (int, float, decimal)}
    }
)

RequestUnstakeEvent = LogEvent(
    event="RequestUnstake",
    params={
        "user": {"type": str, "idx": True},
        "pool_id": {"type": int},
        "amount": {"type": (int, float, decimal)}
    }
)

WithdrawEvent = LogEvent(
    event="Withdraw",
    params={
        "user": {"type": str, "idx": True},
        "pool_id": {"type": int},
        "amount": {"type": (int, float, decimal)},
        "block_number": {"type": int}
    }
)

ClaimEvent = LogEvent(
    event="Claim",
    params={
        "user": {"type": str, "idx": True},
        "pool_id": {"type": int},
        "amount": {"type": (int, float, decimal)}
    }
)

AddPoolEvent = LogEvent(
    event="AddPool",
    params={
        "token": {"type": str, "idx": True},
        "pool_weight": {"type": int},
        "last_reward_block": {"type": int},
        "min_deposit_amount": {"type": (int, float, decimal)},
        "unstake_lock_blocks": {"type": int}
    }
)

UpdatePoolEvent = LogEvent(
    event="UpdatePool",
    params={
        "pool_id": {"type": int},
        "last_reward_block": {"type": int},
        "pool_reward": {"type": (int, float, decimal)}
    }
)

SetPoolWeightEvent = LogEvent(
    event="SetPoolWeight",
    params={
        "pool_id": {"type": int},
        "pool_weight": {"type": int},
        "total_pool_weight": {"type": int}
    }
)

UpdatePoolInfoEvent = LogEvent(
    event="UpdatePoolInfo",
    params={
        "pool_id": {"type": int},
        "min_deposit_amount": {"type": (int, float, decimal)},
        "unstake_lock_blocks": {"type": int}
    }
)

AdminWithdrawEvent = LogEvent(
    event="AdminWithdraw",
    params={
        "admin": {"type": str, "idx": True},
        "amount": {"type": (int, float, decimal)}
    }
)

SetMetaNodeEvent = LogEvent(
    event="SetMetaNode",
    params={
        "reward_token": {"type": str, "idx": True}
    }
)

SetMetaNodePerBlockEvent = LogEvent(
    event="SetMetaNodePerBlock",
    params={
        "reward_per_block": {"type": (int, float, decimal)}
    }
)

PauseChangedEvent = LogEvent(
    event="PauseChanged",
    params={
        "flag": {"type": str, "idx": True},
        "paused": {"type": bool}
    }
)


@construct
def seed(
    reward_token_contract: str,
    metanode_per_block: int,
    access_control_contract: str,
    native_token_contract: str = "currency"
):
    assert reward_token_contract is not None and reward_token_contract != "", "invalid MetaNode address"
    assert metanode_per_block > 0, "invalid MetaNodePerBlock"
    assert access_control_contract is not None and access_control_contract != "", "invalid access control address"
    assert native_token_contract is not None and native_token_contract != "", "invalid native token address"
    assert native_token_contract != reward_token_contract, "MetaNode token cannot be a staking token"

    reward_token.set(reward_token_contract)
    reward_per_block.set(metanode_per_block)
    access_control.set(access_control_contract)
    native_contract.set(native_token_contract)
    total_pool_weight.set(0)
    pool_count.set(0)

    paused[GLOBAL_FLAG] = False
    for flag in PAUSE_FLAGS:
        paused[flag] = False


# Helper functions

def assert_is_admin():
    acl = importlib.import_module(access_control.get())
    acl.require_role(role=ADMIN_ROLE, account=ctx.caller)


def assert_not_paused(flag: str):
    assert not paused[GLOBAL_FLAG] and not paused[flag], f"{flag} is paused"


def assert_pool_exists(pool_id: int):
    assert pool_id >= 0 and pool_id < pool_count.get(), "invalid pid"


def assert_valid_pool_params(pool_weight: int, min_deposit_amount: int, unstake_lock_blocks: int):
    assert pool_weight > 0, "invalid pool weight"
    assert unstake_lock_blocks > 0, "invalid unstake locked blocks"
    assert min_deposit_amount >= 0, "invalid min deposit amount"


def load_user(pool_id: int, user: str):
    user_stake = stakes[pool_id, user]
    if user_stake is None:
        return {"amount": 0, "reward_debt": 0, "pending": 0}
    return user_stake


def load_requests(pool_id: int, user: str):
    requests = unstake_requests[pool_id, user]
    if requests is None:
        return []
    return requests


def accrued_reward(amount: int, acc_reward_per_share: int):
    return amount * acc_reward_per_share // ACC_PRECISION


def unsettled_reward(user_stake: dict, acc_reward_per_share: int):
    return accrued_reward(user_stake["amount"], acc_reward_per_share) - user_stake["reward_debt"]


def projected_acc_reward_per_share(pool: dict, current_block: int):
    acc = pool["acc_reward_per_share"]
    elapsed = current_block - pool["last_reward_block"]
    if elapsed <= 0 or pool["total_staked"] == 0:
        return acc

    pool_reward = elapsed * reward_per_block.get() * pool["pool_weight"] // total_pool_weight.get()
    return acc + pool_reward * ACC_PRECISION // pool["total_staked"]


def refresh_pool(pool_id: int):
    pool = pools[pool_id]
    current_block = block_num
    elapsed = current_block - pool["last_reward_block"]

    if elapsed <= 0:
        return pool

    if pool["total_staked"] == 0:
        # Rewards for blocks with nothing staked are not banked
        pool["last_reward_block"] = current_block
        pools[pool_id] = pool
        return pool

    pool_reward = elapsed * reward_per_block.get() * pool["pool_weight"] // total_pool_weight.get()
    pool["acc_reward_per_share"] = pool["acc_reward_per_share"] + pool_reward * ACC_PRECISION // pool["total_staked"]
    pool["last_reward_block"] = current_block
    pools[pool_id] = pool

    UpdatePoolEvent({
        "pool_id": pool_id,
        "last_reward_block": current_block,
        "pool_reward": pool_reward
    })

    return pool


def refresh_all_pools():
    for pool_id in range(pool_count.get()):
        refresh_pool(pool_id)


def settle(user_stake: dict, pool: dict):
    user_stake["pending"] = user_stake["pending"] + unsettled_reward(user_stake, pool["acc_reward_per_share"])


def deposit(pool_id: int, amount: int, asset_kind: str):
    assert_not_paused("staking")
    assert_pool_exists(pool_id)

    pool = pools[pool_id]
    assert pool["asset_kind"] == asset_kind, "invalid staking token address"
    assert amount >= pool["min_deposit_amount"], "amount is less than minDepositAmount"

    pool = refresh_pool(pool_id)
    user_stake = load_user(pool_id, ctx.caller)
    settle(user_stake, pool)

    user_stake["amount"] = user_stake["amount"] + amount
    user_stake["reward_debt"] = accrued_reward(user_stake["amount"], pool["acc_reward_per_share"])
    pool["total_staked"] = pool["total_staked"] + amount

    stakes[pool_id, ctx.caller] = user_stake
    pools[pool_id] = pool

    if amount > 0:
        importlib.import_module(pool["token"]).transfer_from(
            amount=amount,
            to=ctx.this,
            main_account=ctx.caller
        )

    DepositEvent({
        "user": ctx.caller,
        "pool_id": pool_id,
        "amount": amount
    })


# Staking

@export
def stake_native(pool_id: int, amount: int):
    deposit(pool_id, amount, NATIVE)


@export
def stake_token(pool_id: int, amount: int):
    deposit(pool_id, amount, TOKEN)


@export
def unstake(pool_id: int, amount: int):
    assert_not_paused("unstaking")
    assert_pool_exists(pool_id)
    assert amount > 0, "invalid unstake amount"

    user_stake = load_user(pool_id, ctx.caller)
    assert user_stake["amount"] >= amount, "insufficient staked amount"

    pool = refresh_pool(pool_id)
    settle(user_stake, pool)

    user_stake["amount"] = user_stake["amount"] - amount
    user_stake["reward_debt"] = accrued_reward(user_stake["amount"], pool["acc_reward_per_share"])
    pool["total_staked"] = pool["total_staked"] - amount

    requests = load_requests(pool_id, ctx.caller)
    requests.append({
        "amount": amount,
        "unlock_block": block_num + pool["unstake_lock_blocks"]
    })

    stakes[pool_id, ctx.caller] = user_stake
    pools[pool_id] = pool
    unstake_requests[pool_id, ctx.caller] = requests

    RequestUnstakeEvent({
        "user": ctx.caller,
        "pool_id": pool_id,
        "amount": amount
    })


@export
def withdraw(pool_id: int):
    assert_not_paused("withdraw")
    assert_pool_exists(pool_id)

    current_block = block_num
    withdrawable = 0
    remaining = []

    for request in load_requests(pool_id, ctx.caller):
        if request["unlock_block"] <= current_block:
            withdrawable += request["amount"]
        else:
            remaining.append(request)

    assert withdrawable > 0, "no withdrawable amount"

    unstake_requests[pool_id, ctx.caller] = remaining

    pool = pools[pool_id]
    importlib.import_module(pool["token"]).transfer(amount=withdrawable, to=ctx.caller)

    WithdrawEvent({
        "user": ctx.caller,
        "pool_id": pool_id,
        "amount": withdrawable,
        "block_number": current_block
    })

    return withdrawable


@export
def claim_reward(pool_id: int):
    assert_not_paused("claim")
    assert_pool_exists(pool_id)

    pool = refresh_pool(pool_id)
    user_stake = load_user(pool_id, ctx.caller)

    reward = user_stake["pending"] + unsettled_reward(user_stake, pool["acc_reward_per_share"])
    assert reward > 0, "no reward to claim"

    metanode = importlib.import_module(reward_token.get())
    assert metanode.balance_of(address=ctx.this) >= reward, "insufficient reward tokens in contract"

    user_stake["pending"] = 0
    user_stake["reward_debt"] = accrued_reward(user_stake["amount"], pool["acc_reward_per_share"])
    stakes[pool_id, ctx.caller] = user_stake

    metanode.transfer(amount=reward, to=ctx.caller)

    ClaimEvent({
        "user": ctx.caller,
        "pool_id": pool_id,
        "amount": reward
    })

    return reward


@export
def update_pool(pool_id: int):
    assert_pool_exists(pool_id)
    refresh_pool(pool_id)


@export
def mass_update_pools():
    refresh_all_pools()


# Pool management (admin only)

@export
def add_pool(
    asset_kind: str,
    pool_weight: int,
    min_deposit_amount: int,
    unstake_lock_blocks: int,
    token_contract: str = None,
    with_update: bool = False
):
    assert_is_admin()
    assert_valid_pool_params(pool_weight, min_deposit_amount, unstake_lock_blocks)
    assert asset_kind == NATIVE or asset_kind == TOKEN, "invalid asset kind"

    pool_id = pool_count.get()

    if pool_id == 0:
        assert asset_kind == NATIVE, "first pool must be ETH pool"
        token = native_contract.get()
    else:
        assert asset_kind == TOKEN, "ERC20 pool token address cannot be zero"
        assert token_contract is not None and token_contract != "", "ERC20 pool token address cannot be zero"
        token = token_contract

    assert token_pools[token] is None, "pool already exists for this token"
    assert token != reward_token.get(), "MetaNode token cannot be a staking token"

    if with_update:
        refresh_all_pools()

    last_reward_block = block_num

    pools[pool_id] = {
        "pool_id": pool_id,
        "asset_kind": asset_kind,
        "token": token,
        "pool_weight": pool_weight,
        "min_deposit_amount": min_deposit_amount,
        "unstake_lock_blocks": unstake_lock_blocks,
        "total_staked": 0,
        "last_reward_block": last_reward_block,
        "acc_reward_per_share": 0
    }
    token_pools[token] = pool_id
    pool_count.set(pool_id + 1)
    total_pool_weight.set(total_pool_weight.get() + pool_weight)

    AddPoolEvent({
        "token": token,
        "pool_weight": pool_weight,
        "last_reward_block": last_reward_block,
        "min_deposit_amount": min_deposit_amount,
        "unstake_lock_blocks": unstake_lock_blocks
    })

    return pool_id


@export
def set_pool_weight(pool_id: int, pool_weight: int, with_update: bool = False):
    assert_is_admin()
    assert_pool_exists(pool_id)
    assert pool_weight > 0, "invalid pool weight"

    if with_update:
        refresh_all_pools()

    pool = pools[pool_id]
    new_total = total_pool_weight.get() - pool["pool_weight"] + pool_weight
    pool["pool_weight"] = pool_weight
    pools[pool_id] = pool
    total_pool_weight.set(new_total)

    SetPoolWeightEvent({
        "pool_id": pool_id,
        "pool_weight": pool_weight,
        "total_pool_weight": new_total
    })


@export
def update_pool_info(pool_id: int, min_deposit_amount: int, unstake_lock_blocks: int):
    assert_is_admin()
    assert_pool_exists(pool_id)
    assert unstake_lock_blocks > 0, "invalid unstake locked blocks"
    assert min_deposit_amount >= 0, "invalid min deposit amount"

    pool = pools[pool_id]
    pool["min_deposit_amount"] = min_deposit_amount
    pool["unstake_lock_blocks"] = unstake_lock_blocks
    pools[pool_id] = pool

    UpdatePoolInfoEvent({
        "pool_id": pool_id,
        "min_deposit_amount": min_deposit_amount,
        "unstake_lock_blocks": unstake_lock_blocks
    })


@export
def set_reward_per_block(metanode_per_block: int, with_update: bool = False):
    assert_is_admin()
    assert metanode_per_block > 0, "invalid MetaNodePerBlock"

    if with_update:
        refresh_all_pools()

    reward_per_block.set(metanode_per_block)
    SetMetaNodePerBlockEvent({"reward_per_block": metanode_per_block})


@export
def set_reward_token(reward_token_contract: str):
    assert_is_admin()
    assert reward_token_contract is not None and reward_token_contract != "", "invalid MetaNode address"
    assert token_pools[reward_token_contract] is None, "MetaNode token cannot be a staking token"
    assert reward_token_contract != native_contract.get(), "MetaNode token cannot be a staking token"

    reward_token.set(reward_token_contract)
    SetMetaNodeEvent({"reward_token": reward_token_contract})


@export
def withdraw_all_reward_tokens():
    assert_is_admin()

    metanode = importlib.import_module(reward_token.get())
    balance = metanode.balance_of(address=ctx.this)
    assert balance > 0, "no reward tokens to withdraw"

    metanode.transfer(amount=balance, to=ctx.caller)

    AdminWithdrawEvent({"admin": ctx.caller, "amount": balance})

    return balance


# Pause controls (admin only)

def set_flag(flag: str, value: bool):
    paused[flag] = value
    PauseChangedEvent({"flag": flag, "paused": value})


@export
def pause_global(pause: bool):
    assert_is_admin()
    set_flag(GLOBAL_FLAG, pause)


@export
def pause_staking(pause: bool):
    assert_is_admin()
    set_flag("staking", pause)


@export
def pause_unstaking(pause: bool):
    assert_is_admin()
    set_flag("unstaking", pause)


@export
def pause_withdraw(pause: bool):
    assert_is_admin()
    set_flag("withdraw", pause)


@export
def pause_claim(pause: bool):
    assert_is_admin()
    set_flag("claim", pause)


@export
def set_paused_states(staking_paused: bool, unstaking_paused: bool, withdraw_paused: bool, claim_paused: bool):
    assert_is_admin()
    set_flag("staking", staking_paused)
    set_flag("unstaking", unstaking_paused)
    set_flag("withdraw", withdraw_paused)
    set_flag("claim", claim_paused)


# Views

@export
def get_pool_length():
    return pool_count.get()


@export
def get_total_pool_weight():
    return total_pool_weight.get()


@export
def get_pool(pool_id: int):
    assert_pool_exists(pool_id)
    return pools[pool_id]


@export
def get_user(pool_id: int, user: str):
    assert_pool_exists(pool_id)
    return load_user(pool_id, user)


@export
def staking_balance(pool_id: int, user: str):
    assert_pool_exists(pool_id)
    return load_user(pool_id, user)["amount"]


@export
def pending_reward(pool_id: int, user: str):
    assert_pool_exists(pool_id)

    pool = pools[pool_id]
    user_stake = load_user(pool_id, user)
    acc = projected_acc_reward_per_share(pool, block_num)

    return user_stake["pending"] + unsettled_reward(user_stake, acc)


@export
def get_unstake_requests(pool_id: int, user: str):
    assert_pool_exists(pool_id)
    return load_requests(pool_id, user)


@export
def withdraw_amount(pool_id: int, user: str):
    assert_pool_exists(pool_id)

    requested = 0
    withdrawable = 0
    for request in load_requests(pool_id, user):
        requested += request["amount"]
        if request["unlock_block"] <= block_num:
            withdrawable += request["amount"]

    return {
        "requested": requested,
        "withdrawable": withdrawable
    }


@export
def get_paused_states():
    return {
        "global": paused[GLOBAL_FLAG],
        "staking": paused["staking"],
        "unstaking": paused["unstaking"],
        "withdraw": paused["withdraw"],
        "claim": paused["claim"]
    }


@export
def get_contract_status():
    return {
        "reward_token": reward_token.get(),
        "reward_per_block": reward_per_block.get(),
        "total_pool_weight": total_pool_weight.get(),
        "total_pools": pool_count.get(),
        "native_contract": native_contract.get(),
        "access_control": access_control.get()
    }
