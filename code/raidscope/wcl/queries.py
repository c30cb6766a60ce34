"""GraphQL query strings for WCL API v2."""

REPORT_QUERY = """
query Report($code: String!) {
    reportData {
        report(code: $code) {
            title
            startTime
            endTime
            zone { id name }
            fights {
                id
                name
                startTime
                endTime
                kill
                bossPercentage
                fightPercentage
                difficulty
                averageItemLevel
                gameZone { id name }
            }
            dpsRankings: rankings(playerMetric: dps)
            hpsRankings: rankings(playerMetric: hps)
            masterData {
                actors {
                    id
                    name
                    server
                    subType
                    type
                }
            }
        }
    }
}
"""

ATTENDANCE_QUERY = """
query Attendance($code: String!) {
    reportData {
        report(code: $code) {
            fights {
                id
                friendlyPlayers
            }
            masterData {
                actors {
                    id
                    name
                    server
                    type
                }
            }
        }
    }
}
"""
