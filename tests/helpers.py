import json
import re

import httpx

DEPOSITOR = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
DEPOSITOR_CHECKSUM = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
WITHDRAWER = "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359"
WITHDRAWER_CHECKSUM = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
WETH = "0x4200000000000000000000000000000000000006"
UNKNOWN_TOKEN = "0xdbf03b407c01e7cd3cbea99509d93f8dddc8c6fb"


def tx_hash(n):
    return f"0x{n:064x}"


def raw_deposit(block, n, amount="1000000000000000000000000", token=WETH):
    return {
        "amount": amount,
        "blockNumber": str(block),
        "blockTimestamp": str(1700000000 + block),
        "depositor": DEPOSITOR,
        "token": token,
        "transactionHash": tx_hash(n),
    }


def raw_withdraw(block, n, amount="5", token=WETH):
    return {
        "amount": amount,
        "blockNumber": str(block),
        "blockTimestamp": str(1700000000 + block),
        "withdrawer": WITHDRAWER,
        "token": token,
        "transactionHash": tx_hash(n),
    }


class FakeSubgraph:
    """serves deposits/withdraws the way graph-node pages them"""

    def __init__(self, deposits=(), withdraws=(), errors_for=(), errors_after=None):
        self.entities = {"deposits": list(deposits), "withdraws": list(withdraws)}
        self.errors_for = set(errors_for)
        # entity -> number of pages served before the error
        self.errors_after = dict(errors_after or {})
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query = body["query"]
        variables = body["variables"]
        entity = "deposits" if "deposits(" in query else "withdraws"
        self.requests.append((entity, variables, request))

        served = len(self.calls(entity)) - 1
        if entity in self.errors_for or served >= self.errors_after.get(entity, float("inf")):
            return httpx.Response(200, json={"errors": [{"message": "indexing error"}]})

        first = int(re.search(r"first: (\d+)", query).group(1))
        from_block = int(variables["fromBlock"])
        skip = variables["skip"]
        rows = sorted(
            (r for r in self.entities[entity] if int(r["blockNumber"]) >= from_block),
            key=lambda r: int(r["blockNumber"]))
        return httpx.Response(200, json={"data": {entity: rows[skip:skip + first]}})

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def calls(self, entity):
        return [(v["fromBlock"], v["skip"]) for e, v, _ in self.requests if e == entity]
