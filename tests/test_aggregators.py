import pytest
import requests
import requests_mock

from swapagent.aggregators.kyberswap import KyberSwapClient
from swapagent.aggregators.odos import OdosClient
from swapagent.aggregators.oneinch import OneInchClient
from swapagent.aggregators.paraswap import ParaSwapClient
from swapagent.chains import NATIVE_TOKEN, ZERO_ADDRESS
from swapagent.config import settings
from swapagent.errors import NoRouteFound, ProviderError
from swapagent.types import Provider

TOKEN = "0x1111111111111111111111111111111111111111"
TAKER = "0x2222222222222222222222222222222222222222"
ROUTER = "0x3333333333333333333333333333333333333333"
PROXY = "0x4444444444444444444444444444444444444444"
AMOUNT = 10**15


def kyber_url(path):
    return f"{settings.kyber_base}/{settings.kyber_chain}/api/v1{path}"


# --- KyberSwap (primary) ---


def test_kyberswap_buy_quote():
    with requests_mock.Mocker() as m:
        m.get(
            kyber_url("/routes"),
            json={"data": {"routeSummary": {"amountOut": "123"}, "routerAddress": ROUTER}},
        )
        m.post(
            kyber_url("/route/build"),
            json={"data": {"data": "0xdeadbeef", "routerAddress": ROUTER, "amountOut": "120"}},
        )
        quote = KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)

        route_req, build_req = m.request_history
        assert route_req.headers["X-Client-Id"] == settings.kyber_client_id
        assert f"amountIn={AMOUNT}" in route_req.url
        assert build_req.json()["slippageTolerance"] == 500
        assert build_req.json()["sender"] == TAKER

    assert quote.provider == Provider.PRIMARY
    assert quote.to == ROUTER
    assert quote.data == "0xdeadbeef"
    assert quote.value == AMOUNT
    assert quote.expected_out == 120
    assert quote.approval_target == ROUTER


def test_kyberswap_no_route():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), json={"code": 4008, "message": "route not found", "data": {}})
        with pytest.raises(NoRouteFound):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)
        assert m.call_count == 1


def test_kyberswap_http_error():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), status_code=502, text="bad gateway")
        with pytest.raises(ProviderError) as exc:
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)
    assert exc.value.status == 502
    assert exc.value.provider == "kyberswap"


def test_transport_error_is_provider_error():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), exc=requests.exceptions.ConnectTimeout)
        with pytest.raises(ProviderError):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_malformed_json_is_provider_error():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), text="<html>oops</html>")
        with pytest.raises(ProviderError):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_build_without_transaction_is_no_route():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), json={"data": {"routeSummary": {"amountOut": "1"}}})
        m.post(kyber_url("/route/build"), json={"data": {}})
        with pytest.raises(NoRouteFound):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_list_body_is_provider_error():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), json=["unexpected"])
        with pytest.raises(ProviderError, match="unexpected list"):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_nested_non_dict_route_is_no_route():
    with requests_mock.Mocker() as m:
        m.get(kyber_url("/routes"), json={"data": ["nope"]})
        with pytest.raises(NoRouteFound):
            KyberSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_unparseable_amount_is_no_route():
    with requests_mock.Mocker() as m:
        m.get(f"{settings.paraswap_base}/prices", json={"priceRoute": {"destAmount": "lots"}})
        m.post(
            f"{settings.paraswap_base}/transactions/{settings.chain_id}",
            json={"to": ROUTER, "data": "0x1234"},
        )
        with pytest.raises(NoRouteFound, match="bad amount"):
            ParaSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


# --- Odos (secondary) ---


def test_odos_uses_zero_address_for_native():
    with requests_mock.Mocker() as m:
        m.post(f"{settings.odos_base}/sor/quote/v2", json={"pathId": "path-1", "outAmounts": ["999"]})
        m.post(
            f"{settings.odos_base}/sor/assemble",
            json={"transaction": {"to": ROUTER, "data": "0xabcd", "value": str(AMOUNT)}},
        )
        quote = OdosClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)

        quote_req, assemble_req = m.request_history
        body = quote_req.json()
        assert body["inputTokens"][0]["tokenAddress"] == ZERO_ADDRESS
        assert body["outputTokens"][0]["tokenAddress"] == TOKEN
        assert body["chainId"] == settings.chain_id
        assert body["slippageLimitPercent"] == 3
        assert assemble_req.json() == {"userAddr": TAKER, "pathId": "path-1"}

    assert quote.provider == Provider.SECONDARY
    assert quote.value == AMOUNT
    assert quote.expected_out == 999


def test_odos_sell_has_no_value():
    with requests_mock.Mocker() as m:
        m.post(f"{settings.odos_base}/sor/quote/v2", json={"pathId": "p"})
        m.post(f"{settings.odos_base}/sor/assemble", json={"transaction": {"to": ROUTER, "data": "0x01"}})
        quote = OdosClient().quote_and_build(TOKEN, NATIVE_TOKEN, AMOUNT, TAKER)
    assert quote.value == 0
    assert quote.expected_out is None


def test_odos_no_path():
    with requests_mock.Mocker() as m:
        m.post(f"{settings.odos_base}/sor/quote/v2", json={"detail": "no path"})
        with pytest.raises(NoRouteFound):
            OdosClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


# --- ParaSwap (tertiary) ---


def test_paraswap_spender_is_transfer_proxy():
    with requests_mock.Mocker() as m:
        m.get(
            f"{settings.paraswap_base}/prices",
            json={"priceRoute": {"destAmount": "555", "tokenTransferProxy": PROXY}},
        )
        m.post(
            f"{settings.paraswap_base}/transactions/{settings.chain_id}",
            json={"to": ROUTER, "data": "0xfeed", "value": "0"},
        )
        quote = ParaSwapClient().quote_and_build(TOKEN, NATIVE_TOKEN, AMOUNT, TAKER)

        build_req = m.request_history[1]
        assert "ignoreChecks=true" in build_req.url
        assert build_req.json()["slippage"] == 300
        assert build_req.json()["srcAmount"] == str(AMOUNT)

    assert quote.provider == Provider.TERTIARY
    assert quote.to == ROUTER
    assert quote.spender == PROXY
    assert quote.approval_target == PROXY
    assert quote.value == 0
    assert quote.expected_out == 555


def test_paraswap_no_price_route():
    with requests_mock.Mocker() as m:
        m.get(f"{settings.paraswap_base}/prices", json={"error": "No routes found with enough liquidity"})
        with pytest.raises(NoRouteFound):
            ParaSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)


def test_paraswap_build_rejected():
    with requests_mock.Mocker() as m:
        m.get(f"{settings.paraswap_base}/prices", json={"priceRoute": {"destAmount": "1"}})
        m.post(
            f"{settings.paraswap_base}/transactions/{settings.chain_id}",
            status_code=400,
            json={"error": "Unable to build"},
        )
        with pytest.raises(ProviderError) as exc:
            ParaSwapClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)
    assert exc.value.status == 400


# --- 1inch (quaternary) ---


def test_oneinch_quote_and_swap(monkeypatch):
    monkeypatch.setattr(settings, "oneinch_api_key", "inch-key")
    base = f"{settings.oneinch_base}/swap/v6.0/{settings.chain_id}"
    with requests_mock.Mocker() as m:
        m.get(f"{base}/quote", json={"dstAmount": "777"})
        m.get(f"{base}/swap", json={"tx": {"to": ROUTER, "data": "0xbeef", "value": str(AMOUNT)}})
        quote = OneInchClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)

        for req in m.request_history:
            assert req.headers["Authorization"] == "Bearer inch-key"
        assert "slippage=3.0" in m.request_history[1].url

    assert quote.provider == Provider.QUATERNARY
    assert quote.value == AMOUNT
    assert quote.expected_out == 777


def test_oneinch_missing_tx():
    base = f"{settings.oneinch_base}/swap/v6.0/{settings.chain_id}"
    with requests_mock.Mocker() as m:
        m.get(f"{base}/quote", json={"dstAmount": "777"})
        m.get(f"{base}/swap", json={"description": "insufficient liquidity"})
        with pytest.raises(NoRouteFound):
            OneInchClient().quote_and_build(NATIVE_TOKEN, TOKEN, AMOUNT, TAKER)
