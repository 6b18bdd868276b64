from __future__ import annotations

GET_SHOP = """
query GetShop {
    shop {
        name
        email
        primaryDomain {
            url
            host
        }
        plan {
            displayName
        }
    }
}
"""

LIST_THEMES = """
query ListThemes($first: Int!) {
    themes(first: $first) {
        nodes {
            id
            name
            role
            processing
            createdAt
            updatedAt
        }
    }
}
"""

GET_THEME_FILES = """
query GetThemeFiles($themeId: ID!, $first: Int!) {
    theme(id: $themeId) {
        id
        name
        role
        files(first: $first) {
            nodes {
                filename
                size
                contentType
                checksumMd5
                createdAt
                updatedAt
            }
        }
    }
}
"""

GET_FILE_CONTENT = """
query GetFileContent($themeId: ID!, $filenames: [String!]!) {
    theme(id: $themeId) {
        id
        name
        files(filenames: $filenames, first: 1) {
            nodes {
                filename
                size
                contentType
                body {
                    __typename
                    ... on OnlineStoreThemeFileBodyText {
                        content
                    }
                    ... on OnlineStoreThemeFileBodyBase64 {
                        contentBase64
                    }
                }
            }
        }
    }
}
"""

UPSERT_THEME_FILE = """
mutation ThemeFilesUpsert($themeId: ID!, $files: [OnlineStoreThemeFilesUpsertFileInput!]!) {
    themeFilesUpsert(themeId: $themeId, files: $files) {
        upsertedThemeFiles {
            filename
            checksumMd5
        }
        userErrors {
            field
            message
        }
    }
}
"""

DELETE_THEME_FILE = """
mutation ThemeFilesDelete($themeId: ID!, $files: [String!]!) {
    themeFilesDelete(themeId: $themeId, files: $files) {
        deletedThemeFiles {
            filename
        }
        userErrors {
            field
            message
        }
    }
}
"""

THEMES_PAGE_SIZE = 20
THEME_FILES_PAGE_SIZE = 250
