# XSC001 token used as native coin, stake token and MetaNode in the staking tests
balances = Hash(default_value=0)
metadata = Hash()


@construct
def seed(token_name: str = "Test Token", token_symbol: str = "TEST", supply: int = 1000000):
    balances[ctx.caller] = supply

    metadata['token_name'] = token_name
    metadata['token_symbol'] = token_symbol
    metadata['token_logo_url'] = ""
    metadata['token_website'] = ""
    metadata['operator'] = ctx.caller


@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can change metadata!'
    metadata[key] = value


@export
def balance_of(address: str):
    return balances[address]


@export
def allowance(owner: str, spender: str):
    return balances[owner, spender]


@export
def transfer(amount: int, to: str):
    assert amount > 0, 'Cannot send negative balances!'
    assert balances[ctx.caller] >= amount, 'Not enough coins to send!'
    balances[ctx.caller] -= amount
    balances[to] += amount


@export
def approve(amount: int, to: str):
    assert amount >= 0, 'Cannot approve negative balances!'
    balances[ctx.caller, to] = amount


@export
def transfer_from(amount: int, to: str, main_account: str):
    assert amount > 0, 'Cannot send negative balances!'
    assert balances[main_account, ctx.caller] >= amount, 'Not enough coins approved to send!'
    assert balances[main_account] >= amount, 'Not enough coins to send!'
    balances[main_account, ctx.caller] -= amount
    balances[main_account] -= amount
    balances[to] += amount
