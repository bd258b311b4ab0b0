import hashlib

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPBasicCredentials

from minesweeper_bot.authentication.basic_authentication import BasicAuthentication, get_parser


async def test_verify_registered_host(session_factory):
    basic_auth = BasicAuthentication(pepper="pepper")
    stored = await basic_auth.store_host_data("koishi", "secret")

    assert stored is not None
    assert stored.hash_password != "secret"
    assert (await basic_auth.verify("koishi", "secret")).username == "koishi"
    assert await basic_auth.verify("koishi", "wrong") is None
    assert await basic_auth.verify("nobody", "secret") is None


async def test_duplicate_host_is_rejected(session_factory):
    basic_auth = BasicAuthentication(pepper="pepper")
    await basic_auth.store_host_data("koishi", "secret")
    assert await basic_auth.store_host_data("koishi", "other") is None


async def test_check_host_data_raises_401(session_factory):
    basic_auth = BasicAuthentication(pepper="pepper")
    await basic_auth.store_host_data("koishi", "secret")

    with pytest.raises(HTTPException) as exc_info:
        await basic_auth.check_host_data(HTTPBasicCredentials(username="koishi", password="nope"))
    assert exc_info.value.status_code == 401


async def test_hosts_get_their_own_salt(session_factory):
    basic_auth = BasicAuthentication(pepper="pepper")
    first = await basic_auth.store_host_data("koishi", "secret")
    second = await basic_auth.store_host_data("satori", "secret")

    assert first.salt != second.salt
    assert first.hash_password != second.hash_password
    expected = hashlib.sha256(("secret" + first.salt + "pepper").encode()).hexdigest()
    assert first.hash_password == expected


async def test_pepper_is_part_of_the_hash(session_factory):
    await BasicAuthentication(pepper="pepper").store_host_data("koishi", "secret")
    assert await BasicAuthentication(pepper="other").verify("koishi", "secret") is None


def test_register_host_arguments():
    args = get_parser().parse_args(["--username", "koishi", "--password", "secret"])
    assert (args.username, args.password) == ("koishi", "secret")
