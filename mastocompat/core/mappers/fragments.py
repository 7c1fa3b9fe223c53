"""GraphQL selections the HTTP layer asks the platform for.

Aliases produce the field names the mappers read, so responses can be fed
to them without reshaping.
"""

USER_PROFILE = """
  id
  created_at: date_created
  profile {
    avatar: icon
    avatar_static: icon
    header: image
    header_static: image
    display_name: name
    note: summary
    website
  }
  character {
    username
    acct: username
    url: canonical_uri
    peered {
      canonical_uri
    }
  }
"""

POST_CONTENT = """
  name
  summary
  content: html_body
"""

MEDIA = """
  id
  url
  path
  media_type
  label
  description
  size
"""

USER_QUERY = f"""
query ($filter: CharacterFilters) {{
  user(filter: $filter) {{
{USER_PROFILE}
  }}
}}
"""

POST_QUERY = f"""
query ($filter: PostFilters) {{
  post(filter: $filter) {{
    __typename
    id
    post_content {{
{POST_CONTENT}
    }}
    media {{
{MEDIA}
    }}
    activity {{
      id
      created_at: date
      uri: canonical_uri
      subject {{
{USER_PROFILE}
      }}
    }}
  }}
}}
"""
