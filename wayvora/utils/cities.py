"""Curated default city list for cache warming — the most-visited destinations."""

CITIES = [
    # United States
    "New York, USA",
    "Los Angeles, USA",
    "Chicago, USA",
    "San Francisco, USA",
    "San Jose, California, USA",
    "Seattle, USA",
    "Boston, USA",
    "Washington DC, USA",
    "Philadelphia, USA",
    "Miami, USA",
    "Orlando, USA",
    "Atlanta, USA",
    "Dallas, USA",
    "Houston, USA",
    "Austin, USA",
    "Denver, USA",
    "Phoenix, USA",
    "Las Vegas, USA",
    "San Diego, USA",
    "Portland, Oregon, USA",

    # Canada
    "Toronto, Canada",
    "Vancouver, Canada",
    "Montreal, Canada",
    "Calgary, Canada",
    "Ottawa, Canada",

    # UK
    "London, UK",
    "Manchester, UK",
    "Birmingham, UK",
    "Liverpool, UK",
    "Edinburgh, UK",
    "Glasgow, UK",

    # France
    "Paris, France",
    "Marseille, France",
    "Lyon, France",
    "Nice, France",
    "Toulouse, France",

    # Germany
    "Berlin, Germany",
    "Munich, Germany",
    "Hamburg, Germany",
    "Frankfurt, Germany",
    "Cologne, Germany",

    # Spain
    "Madrid, Spain",
    "Barcelona, Spain",
    "Valencia, Spain",
    "Seville, Spain",
    "Malaga, Spain",

    # Italy
    "Rome, Italy",
    "Milan, Italy",
    "Florence, Italy",
    "Venice, Italy",
    "Naples, Italy",

    # Netherlands
    "Amsterdam, Netherlands",
    "Rotterdam, Netherlands",
    "The Hague, Netherlands",
    "Utrecht, Netherlands",

    # Switzerland
    "Zurich, Switzerland",
    "Geneva, Switzerland",
    "Basel, Switzerland",

    # Austria
    "Vienna, Austria",
    "Salzburg, Austria",

    # Belgium
    "Brussels, Belgium",
    "Antwerp, Belgium",
    "Ghent, Belgium",

    # Scandinavia
    "Stockholm, Sweden",
    "Gothenburg, Sweden",
    "Malmo, Sweden",
    "Copenhagen, Denmark",
    "Oslo, Norway",
    "Bergen, Norway",
    "Helsinki, Finland",

    # Ireland & Portugal
    "Dublin, Ireland",
    "Lisbon, Portugal",
    "Porto, Portugal",

    # Greece
    "Athens, Greece",
    "Thessaloniki, Greece",

    # Eastern Europe
    "Prague, Czech Republic",
    "Budapest, Hungary",
    "Warsaw, Poland",
    "Krakow, Poland",

    # Turkey & Russia
    "Istanbul, Turkey",
    "Ankara, Turkey",
    "Izmir, Turkey",
    "Moscow, Russia",
    "Saint Petersburg, Russia",

    # Japan
    "Tokyo, Japan",
    "Osaka, Japan",
    "Kyoto, Japan",
    "Yokohama, Japan",
    "Nagoya, Japan",
    "Fukuoka, Japan",
    "Sapporo, Japan",

    # South Korea
    "Seoul, South Korea",
    "Busan, South Korea",
    "Incheon, South Korea",

    # China
    "Beijing, China",
    "Shanghai, China",
    "Shenzhen, China",
    "Guangzhou, China",
    "Hong Kong",

    # Southeast Asia
    "Singapore",
    "Bangkok, Thailand",
    "Chiang Mai, Thailand",
    "Phuket, Thailand",

    # India
    "Delhi, India",
    "Mumbai, India",
    "Bangalore, India",
    "Chennai, India",
    "Hyderabad, India",
    "Kolkata, India",

    # Middle East
    "Dubai, UAE",
    "Abu Dhabi, UAE",
    "Tel Aviv, Israel",
    "Jerusalem, Israel",

    # Australia & New Zealand
    "Sydney, Australia",
    "Melbourne, Australia",
    "Brisbane, Australia",
    "Perth, Australia",
    "Adelaide, Australia",
    "Auckland, New Zealand",
    "Wellington, New Zealand",

    # South America
    "São Paulo, Brazil",
    "Rio de Janeiro, Brazil",
    "Belo Horizonte, Brazil",
    "Mexico City, Mexico",
    "Guadalajara, Mexico",
    "Monterrey, Mexico",
    "Buenos Aires, Argentina",
    "Santiago, Chile",
    "Bogotá, Colombia",
    "Medellín, Colombia",
    "Lima, Peru",

    # Africa
    "Cape Town, South Africa",
    "Johannesburg, South Africa",
]
