"""
Word lists and small grammars for text analysis.

Data only. Every list is lowercase; lookups lowercase their input.
"""

# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

POSITIVE_WORDS = frozenset("""
accomplish accomplished achieve achieved achievement admire adore adored
advantage amazing amazed amused appreciate appreciated awesome beautiful
beloved best better blessed bliss bright brilliant calm celebrate
celebrated charming cheer cheerful clean clever comfort comfortable
confident congrats congratulations cool courage creative delight
delighted delightful easy effective efficient elegant enjoy enjoyed
enjoying enthusiastic excellent excited exciting fabulous fantastic fine
fortunate free fresh friendly fun funny generous gentle glad glorious good
gorgeous grateful great happy harmony healthy helpful hope hopeful
impressive improve improved incredible inspired inspiring interesting
joy joyful kind laugh like liked lovely love loved loving lucky magnificent
marvelous motivated nice optimistic outstanding peaceful perfect pleasant
pleased positive powerful pretty productive proud recommend refreshing
relaxed relaxing reliable relief relieved remarkable rewarding safe
satisfied satisfying smart smile solid splendid strong succeed success
successful superb support supportive sweet terrific thank thankful
thanks thrilled top tremendous triumph trust useful valuable victory warm
welcome win winner wise wonderful worth wow
""".split())

NEGATIVE_WORDS = frozenset("""
abandon abandoned abuse afraid aggressive alarming alone angry annoyed
annoying anxious anxiety ashamed awful bad bitter blame bored boring
broken bug buggy burden careless chaos cheated collapse confused
confusing crash crashed crisis critical cruel cry damage damaged danger
dangerous dead delay delayed depressed depressing desperate destroy
destroyed difficult dirty disappointed disappointing disaster disgusting
dislike dreadful dull embarrassed empty error exhausted fail failed
failing failure fake fear fearful frustrated frustrating furious grief
guilty hate hated hateful headache helpless horrible hostile hurt ill
impossible inferior injury insecure irritated jealous lonely lose loser
losing loss lost mad mess miserable missed mistake nervous noisy
overwhelmed pain painful panic pathetic poor problem problems regret
reject rejected sad scared scary shame shock sick slow sorry stress
stressed stressful stuck stupid suffer suffering terrible tired
tragic trouble ugly unfair unhappy upset useless weak worried worry
worse worst wrong
""".split())

# A sentiment word directly after one of these counts double
INTENSIFIERS = frozenset("""
very really extremely so super incredibly absolutely totally truly
highly deeply especially particularly remarkably exceptionally
""".split())

# ---------------------------------------------------------------------------
# Part of speech hints
# ---------------------------------------------------------------------------

STOPWORDS = frozenset("""
a about above after again against all also am an and any are as at be
because been before being below between both but by can could did do does
doing down during each either every few for from further had has have
having he her here hers herself him himself his how i if in into is it its
itself just me more most my myself neither no nor not now of off on once
only or other our ours ourselves out over own same she should so some such
than that the their theirs them themselves then there these they this
those through to too under until up upon us was we were what when where
which while who whom why will with would you your yours yourself
yourselves today tomorrow yesterday tonight also still yet ever even much
many lot lots thing things something anything nothing everything someone
anyone everyone way really very quite get got go going went gone
monday tuesday wednesday thursday friday saturday sunday january february
march april june july august september october november december
""".split())

# Common verbs in their base and inflected forms
VERBS = frozenset("""
accept add allow answer arrive ask bake be become begin believe bring
build buy call came can carry catch change check choose clean close come
complete consider continue cook could create cut decide deliver describe
design develop did die discuss do does draw drink drive eat email end
explain fall feel felt find finish fix fly follow forget found gave get
give go grow had happen has have hear help hold hope include keep kept
know knew learn leave left let like listen live look lose love made make
may meet met might move must need offer open order paid pay plan play
prepare present provide pull push put read reach remember report require
review run said saw say see seem sell send set share should show sit
sleep speak spend spent stand start stay stop study take talk teach tell
think thought took travel try turn understand update use visit wait walk
want watch win work worked write wrote
""".split())

# Words ending in -ing/-ed that are usually nouns
NOUN_EXCEPTIONS = frozenset("""
meeting building morning evening wedding painting ceiling feeling
reading writing training spring string thing king ring wing nothing
something everything anything beginning ending setting clothing housing
shopping parking hiking camping swimming running learning funding bed
need seed feed speed shed red hundred
""".split())

ADJECTIVES = frozenset("""
big small large little long short new old young high low early late
important different same able bad best better good great last next own
other real sure whole free full hard easy clear main certain ready open
quick slow busy weekly daily monthly yearly personal general public
private social local national final first second third
""".split())

ADJECTIVE_SUFFIXES = ("ous", "ful", "ive", "able", "ible", "less", "ish")

# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

HONORIFICS = frozenset({"mr", "mrs", "ms", "miss", "dr", "prof", "sir", "madam"})

FIRST_NAMES = frozenset("""
aaron adam alex alice amanda amy andrew angela anna anne anthony ashley
ben benjamin bob brian carlos carol charles chris christopher daniel david
deborah diana emily emma eric frank george grace hannah harry helen henry
jack james jane jason jennifer jessica john jose joseph julia karen kate
kevin laura linda lisa lucas maria mark mary matthew michael michelle
mike nancy nicole olivia patricia paul peter rachel richard robert ryan
sam sarah scott sophia steven susan thomas tom william
""".split())

PLACES = frozenset("""
africa amsterdam asia athens australia austria bangkok barcelona beijing
berlin boston brazil brussels budapest cairo california canada chicago
china copenhagen dubai dublin edinburgh egypt england europe florence
france germany greece hawaii india ireland istanbul italy japan kenya
kyoto lisbon london madrid melbourne mexico miami milan montreal moscow
mumbai munich netherlands norway oslo paris portugal prague rome russia
scotland seattle seoul singapore spain stockholm sweden switzerland sydney
texas tokyo toronto turkey vancouver venice vienna wales warsaw zurich
""".split())

# Multi-word places, matched as lowercase token sequences
PLACE_PHRASES = frozenset({
    ("new", "york"), ("los", "angeles"), ("san", "francisco"),
    ("hong", "kong"), ("new", "zealand"), ("south", "africa"),
    ("united", "states"), ("united", "kingdom"), ("rio", "de", "janeiro"),
})

ORGANIZATIONS = frozenset("""
google microsoft apple amazon facebook meta netflix tesla ibm intel
oracle adobe salesforce spotify uber airbnb twitter nasa unesco unicef
nato github openai samsung sony toyota nike
""".split())

ORGANIZATION_SUFFIXES = frozenset("""
inc corp corporation co company ltd llc plc group university college
institute foundation bank agency association council committee
""".split())

# A capitalized word right after one of these is taken as a place
PLACE_PREPOSITIONS = frozenset({"in", "at", "near", "from"})

# ---------------------------------------------------------------------------
# Categories, checked in this order; first match wins
# ---------------------------------------------------------------------------

CATEGORY_RULES = (
    ("Work", ("meeting", "project", "deadline", "task")),
    ("Personal", ("family", "friend", "vacation", "hobby")),
    ("Learning", ("learn", "study", "course", "book")),
    ("Health", ("health", "doctor", "exercise", "fitness")),
    ("Finance", ("money", "budget", "investment", "finance")),
    ("Travel", ("travel", "trip", "vacation")),
)

# Which entity kind also triggers a category
CATEGORY_ENTITY_TRIGGERS = {
    "Work": "organizations",
    "Travel": "places",
}

# Length buckets for tags (word counts)
SHORT_WORD_LIMIT = 50
LONG_WORD_LIMIT = 200
