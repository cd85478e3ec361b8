from datetime import timedelta

import database


def _slugs(response):
    return [item["slug"] for item in response.json()["data"]]


# ----------------------------------------------------------------------------
# Articles
# ----------------------------------------------------------------------------

def test_featured_and_popular_articles(client, seed):
    seed("article", title="A", slug="a", is_featured=True, view_count=1)
    seed("article", title="B", slug="b", is_featured=False, view_count=50)
    seed("article", title="C", slug="c", is_featured=True, view_count=10, publishedAt=None)

    assert _slugs(client.get("/api/articles/featured")) == ["a"]
    assert _slugs(client.get("/api/articles/popular", params={"limit": "1"})) == ["b"]


# ----------------------------------------------------------------------------
# Casino reviews
# ----------------------------------------------------------------------------

def test_top_rated_casinos(client, seed):
    for index, rating in enumerate([9.5, 7.9, 8.0, 10.0]):
        seed("casino-review", name=f"C{index}", slug=f"c{index}", rating=rating)

    assert _slugs(client.get("/api/casino-reviews/top-rated")) == ["c3", "c0", "c2"]


def test_casinos_by_license_is_case_insensitive(client, seed):
    seed("casino-review", name="M", slug="m", license="Malta Gaming Authority", rating=8)
    seed("casino-review", name="C", slug="c", license="Curacao eGaming", rating=9)

    assert _slugs(client.get("/api/casino-reviews/license/malta")) == ["m"]


# ----------------------------------------------------------------------------
# Slots
# ----------------------------------------------------------------------------

def test_high_rtp_slots_sorted_and_limited(client, seed):
    for index in range(14):
        seed("slot", name=f"S{index}", slug=f"s{index}", rtp=96.0 + index / 10)
    seed("slot", name="Low", slug="low", rtp=95.9)

    response = client.get("/api/slots/high-rtp")
    rtps = [item["rtp"] for item in response.json()["data"]]

    assert len(rtps) == 12
    assert rtps == sorted(rtps, reverse=True)
    assert min(rtps) >= 96
    assert rtps[0] == 96.0 + 13 / 10


def test_high_rtp_accepts_a_limit(client, seed):
    seed("slot", name="A", slug="a", rtp=99.0)
    seed("slot", name="B", slug="b", rtp=97.0)

    assert _slugs(client.get("/api/slots/high-rtp", params={"limit": "1"})) == ["a"]


def test_popular_slots_and_provider(client, seed):
    seed("slot", name="Book", slug="book", provider="Novomatic", is_popular=True, rating=8)
    seed("slot", name="Starburst", slug="starburst", provider="NetEnt", is_popular=False, rating=9)

    assert _slugs(client.get("/api/slots/popular")) == ["book"]
    assert _slugs(client.get("/api/slots/provider/netent")) == ["starburst"]


# ----------------------------------------------------------------------------
# Bonuses
# ----------------------------------------------------------------------------

def test_bonuses_by_type(client, seed):
    past = database.now_utc() - timedelta(days=1)
    seed("bonus", name="Spins", slug="spins", bonus_type="free-spins")
    seed("bonus", name="Old spins", slug="old-spins", bonus_type="free-spins", valid_until=past)
    seed("bonus", name="Cash", slug="cash", bonus_type="cashback")

    assert _slugs(client.get("/api/bonuses/type/free-spins")) == ["spins"]


def test_unknown_bonus_type_is_rejected(client):
    response = client.get("/api/bonuses/type/jackpot")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid bonus type"


def test_bonuses_by_casino_and_featured(client, seed):
    lucky = seed("casino-review", name="Lucky", slug="lucky", rating=9)
    other = seed("casino-review", name="Other", slug="other", rating=7)
    seed("bonus", name="L1", slug="l1", bonus_type="welcome", casino_review=lucky)
    seed("bonus", name="O1", slug="o1", bonus_type="welcome", casino_review=other)

    by_casino = client.get(f"/api/bonuses/casino/{lucky}").json()["data"]

    assert [item["slug"] for item in by_casino] == ["l1"]
    assert by_casino[0]["casino_review"]["name"] == "Lucky"
    assert len(client.get("/api/bonuses/featured").json()["data"]) == 2
    assert client.get("/api/bonuses/casino/nope").status_code == 400


# ----------------------------------------------------------------------------
# Comments
# ----------------------------------------------------------------------------

def test_comments_by_parent_only_published(client, seed):
    casino = seed("casino-review", name="Lucky", slug="lucky")
    article = seed("article", title="A", slug="a")
    slot = seed("slot", name="S", slug="s")
    for index in range(3):
        seed("comment", text=f"c{index}", author_name="A", status="published", casino_review=casino)
    seed("comment", text="waiting", author_name="B", status="pending", casino_review=casino)
    seed("comment", text="on article", author_name="C", status="published", article=article)
    seed("comment", text="on slot", author_name="D", status="rejected", slot=slot)

    by_casino = client.get(f"/api/comments/casino/{casino}", params={"limit": "2"}).json()["data"]
    by_article = client.get(f"/api/comments/article/{article}").json()["data"]
    by_slot = client.get(f"/api/comments/slot/{slot}").json()["data"]

    assert len(by_casino) == 2
    assert all(item["text"].startswith("c") for item in by_casino)
    assert [item["text"] for item in by_article] == ["on article"]
    assert by_slot == []


def test_comment_stats(client, seed):
    casino = seed("casino-review", name="Lucky", slug="lucky")
    for rating in (4, 4, 5):
        seed("comment", text="x", author_name="A", status="published", rating=rating, casino_review=casino)
    seed("comment", text="x", author_name="A", status="published", casino_review=casino)
    seed("comment", text="x", author_name="A", status="pending", rating=1, casino_review=casino)
    seed("comment", text="x", author_name="A", status="rejected", rating=1, casino_review=casino)

    stats = client.get("/api/comments/stats").json()["data"]

    assert stats == {"published": 4, "pending": 1, "rejected": 1, "total": 6, "average_rating": 4.3}


def test_comment_stats_rounds_half_up(client, seed):
    casino = seed("casino-review", name="Lucky", slug="lucky")
    for rating in (4, 5, 5, 5):
        seed("comment", text="x", author_name="A", status="published", rating=rating, casino_review=casino)

    assert client.get("/api/comments/stats").json()["data"]["average_rating"] == 4.8


def test_comment_stats_without_ratings(client):
    assert client.get("/api/comments/stats").json()["data"]["average_rating"] == 0


# ----------------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------------

def test_featured_categories_in_sort_order(client, seed):
    seed("category", name="Second", slug="second", is_featured=True, sort_order=2)
    seed("category", name="First", slug="first", is_featured=True, sort_order=1)
    seed("category", name="Hidden", slug="hidden", is_featured=False, sort_order=0)

    assert _slugs(client.get("/api/categories/featured")) == ["first", "second"]


def test_featured_categories_show_whether_they_have_content(client, seed):
    full = seed("category", name="Full", slug="full", is_featured=True, sort_order=1)
    empty = seed("category", name="Empty", slug="empty", is_featured=True, sort_order=2)
    seed("article", title="A", slug="a", category=full)
    seed("article", title="B", slug="b", category=full)
    seed("article", title="Draft", slug="draft", category=empty, publishedAt=None)
    seed("slot", name="S", slug="s", category=full)

    first, second = client.get("/api/categories/featured").json()["data"]

    assert [set(item) for item in first["articles"]] == [{"id"}]
    assert len(first["slots"]) == 1
    assert second["articles"] == []
    assert second["slots"] == []


def test_category_stats(client, seed):
    category = seed("category", name="Egypt", slug="egypt")
    seed("article", title="A", slug="a", category=category)
    seed("article", title="Draft", slug="draft", category=category, publishedAt=None)
    seed("slot", name="S1", slug="s1", category=category)
    seed("slot", name="S2", slug="s2", category=category)

    stats = client.get(f"/api/categories/{category}/stats").json()["data"]

    assert stats == {"articles_count": 1, "slots_count": 2, "total_content": 3}


def test_category_stats_for_missing_category(client):
    response = client.get("/api/categories/0123456789abcdef01234567/stats")

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Category not found"


def test_category_listing_populates_limited_relations(client, seed):
    category = seed("category", name="Egypt", slug="egypt", sort_order=1)
    for index in range(7):
        seed("slot", name=f"S{index}", slug=f"s{index}", category=category)

    item = client.get("/api/categories").json()["data"][0]

    assert len(item["slots"]) == 5
    assert set(item["slots"][0]) == {"id", "name", "slug"}
