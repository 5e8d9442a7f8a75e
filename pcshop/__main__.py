from pcshop.main import main

main()
