import pytest

from airdrop_allocation_checker import AllocationQueryClient, CheckerConfig

# EIP-55 checksummed addresses
ADDR_A = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
ADDR_B = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
ADDR_C = "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"
ADDR_D = "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb"
TOKEN = "0x1789e0043623282D5DCc7F213d703C6D8BAfBB04"

NOW = 1_760_000_000
DEADLINE = NOW + 3 * 86400 + 4 * 3600 + 120


class StubCall:
    def __init__(self, value, barrier=None):
        self.value = value
        self.barrier = barrier

    def call(self):
        if self.barrier is not None:
            self.barrier.wait()
        if isinstance(self.value, BaseException):
            raise self.value
        if callable(self.value):
            return self.value()
        return self.value


class StubFunctions:
    def __init__(self, contract):
        self._contract = contract

    def _call(self, name, value):
        self._contract.calls.append(name)
        return StubCall(value, self._contract.barrier)

    def calculateAllocation(self, address):
        if address in self._contract.failing:
            return self._call("calculateAllocation", RuntimeError("execution reverted"))
        return self._call("calculateAllocation", self._contract.allocations.get(address, 0))

    def hasClaimed(self, address):
        return self._call("hasClaimed", address in self._contract.claimed)

    def CLAIM_END(self):
        return self._call("CLAIM_END", self._contract.deadline)

    def TOKEN(self):
        return self._call("TOKEN", self._contract.token)


class StubContract:
    """Stands in for a web3 contract bound to the claim contract ABI."""

    def __init__(self, allocations=None, claimed=(), failing=(), deadline=DEADLINE, token=TOKEN, barrier=None):
        self.allocations = dict(allocations or {})
        self.claimed = set(claimed)
        self.failing = set(failing)
        self.deadline = deadline
        self.token = token
        self.barrier = barrier
        self.calls = []
        self.functions = StubFunctions(self)


@pytest.fixture
def config():
    return CheckerConfig.from_network("linea", endpoint="http://node.invalid", delay=0)


@pytest.fixture
def example_contract():
    # A: 500 tokens, unclaimed; B: nothing, claimed; C: reverts
    return StubContract(
        allocations={ADDR_A: 500 * 10**18, ADDR_B: 0},
        claimed={ADDR_B},
        failing={ADDR_C},
    )


@pytest.fixture
def client_factory(example_contract):
    def factory(cfg):
        return AllocationQueryClient(cfg, contract=example_contract)

    return factory
