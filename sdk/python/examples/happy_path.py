from __future__ import annotations

import json
import logging

from chainsign import ChainClient, ChainConfig, TokenManager


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = ChainConfig.from_env()
    tokens = TokenManager(config)
    token = tokens.get_token()
    if token is None:
        print("handshake failed, see log output")
        return
    print(json.dumps({"state": tokens.state.value, "token_length": len(token)}, indent=2, sort_keys=True))

    client = ChainClient(config, tokens=tokens)
    out = client.chain_call_for_biz("GetName()", output_types=["string"])
    print(json.dumps(out, indent=2, sort_keys=True, ensure_ascii=False))


if __name__ == "__main__":
    main()
