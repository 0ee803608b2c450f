from pinup.selectors import (
    DEFAULT_POLICY,
    UtilityClassPolicy,
    element_text,
    generate_selector,
    get_meaningful_classes,
    policy_from_config,
    resolve_selector,
)
from pinup.surface import Surface


def parse(html):
    return Surface(html).document


def test_id_anchor_round_trips():
    doc = parse('<body><div class="wrap"><p id="intro">Hello</p></div></body>')
    p = doc.find("p")

    selector = generate_selector(p)

    assert selector == "#intro"
    assert resolve_selector(doc, selector) is p


def test_walk_stops_at_nearest_id():
    doc = parse(
        """<body><main><section id="pricing">
        <div class="PlanCard">Basic</div>
        <div class="PlanCard"><h3>Pro</h3></div>
        </section></main></body>"""
    )
    h3 = doc.find("h3")

    selector = generate_selector(h3)

    assert selector == "#pricing > div.PlanCard:nth-of-type(2) > h3"
    assert resolve_selector(doc, selector) is h3


def test_identical_siblings_are_disambiguated_by_position():
    doc = parse(
        '<body><ul><li class="item">A</li><li class="item">A</li>'
        '<li class="item">A</li></ul></body>'
    )
    items = doc.find_all("li")

    selector = generate_selector(items[1])

    assert selector == "ul > li.item:nth-of-type(2)"
    assert resolve_selector(doc, selector) is items[1]


def test_utility_classes_are_dropped():
    doc = parse('<body><div class="flex p-4 CardTitle">Title</div></body>')

    selector = generate_selector(doc.find("div"))

    assert selector == "div.CardTitle"
    assert "flex" not in selector
    assert "p-4" not in selector


def test_at_most_two_meaningful_classes():
    doc = parse('<body><div class="hover:bg-pink-500 Card Featured Wide">x</div></body>')
    div = doc.find("div")

    assert get_meaningful_classes(div) == ["Card", "Featured"]
    assert generate_selector(div) == "div.Card.Featured"


def test_unique_tag_without_classes_is_bare():
    doc = parse("<body><main><article><span>hi</span></article></main></body>")

    assert generate_selector(doc.find("span")) == "main > article > span"


def test_body_level_element_is_single_segment():
    doc = parse("<body><header>Top</header><div>one</div><div>two</div></body>")

    assert generate_selector(doc.find("header")) == "header"
    assert generate_selector(doc.find_all("div")[1]) == "div:nth-of-type(2)"


def test_body_gives_empty_selector_that_resolves_to_nothing():
    doc = parse("<body><p>text</p></body>")

    selector = generate_selector(doc.body)

    assert selector == ""
    assert resolve_selector(doc, selector) is None


def test_policy_is_replaceable():
    doc = parse('<body><div class="hidden-panel-toggle">x</div></body>')
    div = doc.find("div")

    assert generate_selector(div) == "div.hidden-panel-toggle"

    strict = UtilityClassPolicy([r"^hidden"])
    assert strict.is_utility("hidden-panel-toggle")
    assert generate_selector(div, strict) == "div"


def test_policy_from_config_falls_back_to_default():
    assert policy_from_config([]) is DEFAULT_POLICY
    custom = policy_from_config([r"^u-"])
    assert custom.is_utility("u-grid")
    assert not custom.is_utility("p-4")


def test_unresolvable_selectors_give_none():
    doc = parse("<body><p>text</p></body>")

    assert resolve_selector(doc, "#missing") is None
    assert resolve_selector(doc, "div[") is None
    assert resolve_selector(doc, "   ") is None
    assert resolve_selector(doc, "p::before") is None
    assert resolve_selector(doc, "::selection") is None


def test_element_text_is_trimmed_and_truncated():
    doc = parse(f"<body><p>   {'x' * 150}   </p></body>")

    text = element_text(doc.find("p"))

    assert text == "x" * 100
