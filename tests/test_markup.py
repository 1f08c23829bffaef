from storefront.extract.markup import (
   edition_from_text,
   extract_cover,
   extract_discount,
   extract_edition,
   extract_title,
   first_match,
   json_ld_blocks,
   ld_offer,
   looks_blocked,
   looks_denied,
   parse_page,
)

LD_BLOCK = '<script type="application/ld+json">{"@type": "Product"}</script>'


# ---------- title ----------

def test_title_prefers_og_title():
   html = ('<title>Store</title><h1>Heading</h1>'
           '<meta name="twitter:title" content="Twitter Title">'
           '<meta property="og:title" content="Ghost &amp; Co">')
   assert extract_title(html) == "Ghost & Co"


def test_title_falls_back_to_twitter_then_h1_then_title():
   assert extract_title('<meta name="twitter:title" content="Tw"><h1>H</h1>') == "Tw"
   assert extract_title('<h1 class="x"><span>Halo</span>\n   Infinite</h1><title>T</title>') == "Halo Infinite"
   assert extract_title("<title>  Only\n Title </title>") == "Only Title"
   assert extract_title("<p>nothing</p>") is None


def test_first_match_skips_empty_results():
   chain = (lambda c: None, lambda c: "", lambda c: "third", lambda c: "fourth")
   assert first_match(chain, "") == "third"


# ---------- cover ----------

def test_cover_prefers_og_image():
   html = '<meta property="og:image" content="https://img/og.png"><meta name="twitter:image" content="https://img/tw.png">'
   assert extract_cover(html) == "https://img/og.png"


def test_cover_from_structured_data_graph():
   html = '<script type="application/ld+json">{"@graph": [{"@type": "Product", "image": ["https://img/ld.jpg"]}]}</script>'
   assert extract_cover(html) == "https://img/ld.jpg"


def test_cover_by_alt_text_then_store_image():
   html = '<img src="https://cdn/other.png" alt="Other"><img alt="My Game" src="https://cdn/mine.png">'
   assert extract_cover(html, title="My Game") == "https://cdn/mine.png"

   html = '<img src="https://image.api.store.playstation.com/vulcan/cover.webp?w=440">'
   assert extract_cover(html, title="My Game") == "https://image.api.store.playstation.com/vulcan/cover.webp?w=440"
   assert extract_cover("<img src='https://elsewhere.com/a.png'>") is None


# ---------- discount ----------

def test_discount_percentages():
   assert extract_discount("<span>Save 40%</span>") == 40
   assert extract_discount("<span>%35 indirim</span>") == 35
   assert extract_discount("<span>full price</span>") == 0


# ---------- edition ----------

def test_edition_normalization():
   assert edition_from_text("God of War DIGITAL DELUXE") == "Digital Deluxe Edition"
   assert edition_from_text("digital deluxe edition") == "Digital Deluxe Edition"
   assert edition_from_text("The Collector's Edition") == "Collector's Edition"
   assert edition_from_text("witcher game of the year") == "Game of the Year Edition"
   assert edition_from_text("ULTIMATE EDITION") == "Ultimate Edition"
   assert edition_from_text("Deluxe Edition") == "Deluxe Edition"
   assert edition_from_text("Premium bundle") == "Premium Bundle"
   assert edition_from_text("Plain Game") is None
   assert edition_from_text(None) is None


def test_edition_search_order():
   blocks = [{"@type": "Product", "name": "Plain", "description": "Includes the Gold Edition bonus"}]
   assert extract_edition("Some Game Complete Edition", blocks, "Ultimate Edition") == "Complete Edition"
   assert extract_edition("Some Game", blocks, "Ultimate Edition") == "Gold Edition"
   assert extract_edition("Some Game", [], "<p>Definitive Edition</p>") == "Definitive Edition"
   assert extract_edition(None, [], "<p>nothing</p>") is None


# ---------- offer ----------

def test_offer_price_from_nested_graph():
   html = ('<script type="application/ld+json">not json</script>'
           '<script type="application/ld+json">{"@graph": [{"@type": "WebPage"},'
           '{"@type": "Product", "offers": [{"price": ""}, {"price": "1299.00", "priceCurrency": "TRY"}]}]}</script>')
   assert ld_offer(json_ld_blocks(html)) == (1299.0, "TRY")


def test_offer_price_zero_is_a_price():
   assert ld_offer([{"offers": {"price": 0, "priceCurrency": "UAH"}}]) == (0.0, "UAH")
   assert ld_offer([{"offers": {"price": "free"}}]) is None
   assert ld_offer([{"offers": {"price": "1.299,50 TL", "priceCurrency": "TRY"}}]) == (1299.5, "TRY")
   assert ld_offer([]) is None


# ---------- blocked detection ----------

def test_denial_without_structured_data_is_blocked():
   assert looks_blocked("<html><h1>Access Denied</h1></html>")
   assert looks_blocked("Checking your browser before accessing")


def test_denial_inside_real_content_is_not_blocked():
   assert not looks_blocked(f"<html>{LD_BLOCK}<p>Access Denied</p></html>")
   assert not looks_blocked('<div data-reactroot="">captcha</div>')
   assert not looks_blocked("<html><h1>Halo</h1></html>")


def test_looks_denied():
   assert looks_denied("Access Denied")
   assert looks_denied("403 Forbidden")
   assert not looks_denied("Halo Infinite")
   assert not looks_denied(None)


# ---------- page ----------

def test_parse_page(product_page):
   html = product_page(title="Test Game Deluxe Edition", image="https://img/c.png",
                       price="1299.00", discount_text="Save 40%")
   page = parse_page(html)
   assert not page.blocked
   assert page.title == "Test Game Deluxe Edition"
   assert page.cover == "https://img/c.png"
   assert page.edition == "Deluxe Edition"
   assert page.price == 1299.0
   assert page.currency == "TRY"
   assert page.discount == 40


def test_parse_page_drops_denied_title(product_page):
   page = parse_page(product_page(title="Access Denied"))
   assert not page.blocked
   assert page.title is None


def test_parse_page_blocked():
   assert parse_page("").blocked
   assert parse_page("<html>Request blocked</html>").blocked
