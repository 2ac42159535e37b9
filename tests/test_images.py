import pytest

URL_A = "https://cdn.mail.com/a.png"
URL_B = "https://cdn.mail.com/b.png"
URL_C = "https://cdn.mail.com/c.png"


def primaries(product):
    return [im["url"] for im in product["images"] if im["isPrimary"]]


@pytest.fixture
def widget(seed_product):
    return seed_product("M-100")


def add(client, headers, url, **extra):
    return client.post("/api/products/M-100/images", json={"url": url, **extra}, headers=headers)


def test_first_image_becomes_primary(client, admin_headers, widget):
    res = add(client, admin_headers, URL_A, label="front")
    assert res.status_code == 200
    product = res.json()["product"]
    assert primaries(product) == [URL_A]
    assert product["image"] == URL_A
    assert product["images"][0]["label"] == "front"
    assert product["images"][0]["source"] == "external"


def test_add_is_idempotent_on_url(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    res = add(client, admin_headers, URL_A)
    assert len(res.json()["product"]["images"]) == 1


def test_primary_request_moves_the_flag(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    add(client, admin_headers, URL_B)
    res = add(client, admin_headers, URL_C, isPrimary=True)
    product = res.json()["product"]
    assert primaries(product) == [URL_C]
    assert product["image"] == URL_C


def test_existing_url_can_be_promoted_by_adding_again(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    add(client, admin_headers, URL_B)
    res = add(client, admin_headers, URL_B, isPrimary=True)
    product = res.json()["product"]
    assert len(product["images"]) == 2
    assert primaries(product) == [URL_B]


def test_missing_primary_heals(client, admin_headers, seed_product):
    images = [
        {"url": URL_A, "isPrimary": False, "label": "", "source": "external"},
        {"url": URL_B, "isPrimary": False, "label": "", "source": "external"},
    ]
    seed_product("M-100", images=images)
    res = add(client, admin_headers, URL_C)
    assert primaries(res.json()["product"]) == [URL_A]


def test_set_primary(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    add(client, admin_headers, URL_B)
    res = client.patch("/api/products/M-100/images/primary", json={"url": URL_B}, headers=admin_headers)
    assert res.status_code == 200
    assert primaries(res.json()["product"]) == [URL_B]


def test_set_primary_unknown_url(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    res = client.patch("/api/products/M-100/images/primary", json={"url": URL_B}, headers=admin_headers)
    assert res.status_code == 404
    assert res.json() == {"message": "Image URL is not attached to this product"}


def test_delete_primary_promotes_next(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    add(client, admin_headers, URL_B)
    add(client, admin_headers, URL_C)
    res = client.request("DELETE", "/api/products/M-100/images", json={"url": URL_A}, headers=admin_headers)
    assert res.status_code == 200
    product = res.json()["product"]
    assert [im["url"] for im in product["images"]] == [URL_B, URL_C]
    assert primaries(product) == [URL_B]


def test_delete_last_image(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    res = client.request("DELETE", "/api/products/M-100/images", json={"url": URL_A}, headers=admin_headers)
    product = res.json()["product"]
    assert product["images"] == []
    assert product["image"] is None


def test_delete_unknown_url(client, admin_headers, widget):
    res = client.request("DELETE", "/api/products/M-100/images", json={"url": URL_A}, headers=admin_headers)
    assert res.status_code == 404


@pytest.mark.parametrize("url", ["ftp://cdn.mail.com/a.png", "not a url", None])
def test_rejects_non_http_urls(client, admin_headers, widget, url):
    res = add(client, admin_headers, url)
    assert res.status_code == 400
    assert res.json() == {"message": "A valid http/https URL is required"}


def test_unknown_product(client, admin_headers):
    res = client.post("/api/products/NOPE/images", json={"url": URL_A}, headers=admin_headers)
    assert res.status_code == 404


def test_image_routes_require_admin(client, user_headers, widget):
    assert add(client, user_headers, URL_A).status_code == 403


def test_delete_heals_missing_primary(client, admin_headers, seed_product):
    images = [
        {"url": URL_A, "isPrimary": False, "label": "", "source": "external"},
        {"url": URL_B, "isPrimary": False, "label": "", "source": "external"},
    ]
    seed_product("M-100", images=images)
    res = client.request("DELETE", "/api/products/M-100/images", json={"url": URL_B}, headers=admin_headers)
    assert res.status_code == 200
    assert primaries(res.json()["product"]) == [URL_A]


def test_delete_non_primary_keeps_primary(client, admin_headers, widget):
    add(client, admin_headers, URL_A)
    add(client, admin_headers, URL_B, isPrimary=True)
    res = client.request("DELETE", "/api/products/M-100/images", json={"url": URL_A}, headers=admin_headers)
    assert primaries(res.json()["product"]) == [URL_B]
